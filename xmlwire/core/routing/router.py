import functools
import inspect
import logging
from typing import Any, Callable

from xmlwire.core.models.errors import FaultResponse
from xmlwire.core.models.value import MethodCall, MethodResponse


APPLICATION_ERROR = -32500
"""
Fault code sent when a handler fails with anything but a FaultResponse.
"""

MethodHandler = Callable[..., Any]
"""
A handler receives the decoded call parameters positionally and returns
the result value, directly or as an awaitable.
"""


class MethodRouter:
    """
    Maps XML-RPC method names to handler functions.

    Handlers are registered exactly once per method. Attempting to register a
    second handler for the same method raises a RuntimeError.

    `dispatch()` runs the handler of a decoded MethodCall and always returns a
    MethodResponse: the handler's result, or a fault when it raises. Deciding
    what to do with unknown methods is left to the caller, which is expected
    to `resolve()` first.
    """

    def __init__(self) -> None:
        self._methods: dict[str, MethodHandler] = {}
        self._logger = logging.getLogger("core.routing.router")

    def method(self, name: str | None = None) -> Callable[[MethodHandler], MethodHandler]:
        def decorator(func: MethodHandler) -> MethodHandler:
            self.register(name or func.__name__, func)
            return func

        return decorator

    def register(self, name: str, func: MethodHandler) -> None:
        if name in self._methods:
            raise RuntimeError(f"Handler already registered for '{name}'")

        @functools.wraps(func)
        async def wrapper(*args: Any) -> Any:
            result = func(*args)
            if inspect.isawaitable(result):
                result = await result
            return result

        self._methods[name] = wrapper

    def resolve(self, name: str) -> MethodHandler | None:
        return self._methods.get(name)

    def methods(self) -> dict[str, MethodHandler]:
        return dict(self._methods)

    async def dispatch(self, call: MethodCall) -> MethodResponse:
        handler = self.resolve(call.name)
        if handler is None:
            raise KeyError(f"Unknown method '{call.name}'")

        try:
            result = await handler(*call.params)
        except FaultResponse as exc:
            self._logger.info(f"Method '{call.name}' returned fault {exc.fault_code}")
            return MethodResponse.from_fault(exc.to_dict())
        except Exception as exc:
            self._logger.error(f"Error in handler '{call.name}': {exc}", exc_info=exc)
            return MethodResponse.from_fault({
                "faultCode": APPLICATION_ERROR,
                "faultString": str(exc),
            })

        return MethodResponse(result=result)
