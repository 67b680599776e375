import base64
import binascii
import logging
import re
from collections.abc import AsyncIterable, Iterable
from typing import Any, Callable

from xmlwire.core.codec.dates import DateTimeCodec
from xmlwire.core.models.errors import (
    FaultResponse,
    MalformedValue,
    ProtocolTypeError,
    StructuralError,
    TransportError,
    XmlRpcError,
)
from xmlwire.core.models.value import BigInteger, MethodCall
from xmlwire.core.ports.tokenizer import Tokenizer, TokenizerFactory


INTEGER_PATTERN = re.compile(r"[+-]?[0-9]+")
DOUBLE_PATTERN = re.compile(
    r"[+-]?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)(?:[eE][+-]?[0-9]+)?"
    r"|[+-]?(?:inf|Infinity)|nan|NaN"
)


class Deserializer:
    """
    Incremental, event-driven XML-RPC decoder.

    The deserializer is the EventSink of a tokenizer: it never sees raw
    markup, only `open_tag`/`close_tag`/`text`/`cdata`/`end`/`error`
    events with upper-cased tag names. Decoded values are pushed on a flat
    value stack; opening an ARRAY or STRUCT records a mark (the stack
    length at that point) and closing it replaces everything above the
    mark with a single list or dict. Nesting depth therefore costs heap,
    never call stack.

    An instance decodes exactly one document and delivers exactly one
    outcome, either a list of top-level values or an error. Once the
    outcome is set every further event is ignored.

    Two ways to drive it:
    - pull: `decode_call(chunks)` / `decode_response(chunks)` and their
      async `*_stream` variants feed an iterable of byte chunks;
    - push: `begin()` returns the tokenizer, the caller feeds and closes
      it, then reads `finish_call()` / `finish_response()`.
    """

    def __init__(
        self,
        tokenizer_factory: TokenizerFactory,
        dates: DateTimeCodec | None = None,
    ) -> None:
        self._tokenizer_factory = tokenizer_factory
        self._dates = dates or DateTimeCodec()

        self._stack: list[Any] = []
        self._marks: list[int] = []
        self._data: list[str] = []
        self._type: str | None = None
        self._response_type: str | None = None
        self._method_name: str | None = None
        self._value = False

        self._started = False
        self._outcome: tuple[BaseException | None, list[Any] | None] | None = None
        self._logger = logging.getLogger("core.codec.deserializer")

    @property
    def done(self) -> bool:
        """True once the outcome has been delivered."""
        return self._outcome is not None

    def begin(self) -> Tokenizer:
        """Bind a fresh tokenizer to this instance. Allowed once."""
        if self._started:
            raise RuntimeError("Deserializer instances are single-use")
        self._started = True
        return self._tokenizer_factory(self)

    def decode_call(self, chunks: Iterable[bytes]) -> MethodCall:
        self._pump_sync(chunks)
        return self.finish_call()

    def decode_response(self, chunks: Iterable[bytes]) -> Any:
        self._pump_sync(chunks)
        return self.finish_response()

    async def decode_call_stream(self, chunks: AsyncIterable[bytes]) -> MethodCall:
        await self._pump(chunks)
        return self.finish_call()

    async def decode_response_stream(self, chunks: AsyncIterable[bytes]) -> Any:
        await self._pump(chunks)
        return self.finish_response()

    def finish_call(self) -> MethodCall:
        """Return the decoded call, or raise the delivered error."""
        values = self._values()

        if self._type != "methodcall":
            raise ProtocolTypeError("Not a method call")
        if not self._method_name:
            raise ProtocolTypeError("Method call did not contain a method name")

        return MethodCall(name=self._method_name, params=values)

    def finish_response(self) -> Any:
        """Return the single decoded result, or raise the delivered error."""
        values = self._values()

        if len(values) > 1:
            raise ProtocolTypeError("Response has more than one param")
        if self._type != "methodresponse":
            raise ProtocolTypeError("Not a method response")
        if self._response_type is None:
            raise ProtocolTypeError("Invalid method response")

        return values[0] if values else None

    # Event handlers

    def open_tag(self, name: str) -> None:
        if self.done:
            return

        if name in ("ARRAY", "STRUCT"):
            self._marks.append(len(self._stack))
        self._data = []
        self._value = name == "VALUE"

    def close_tag(self, name: str) -> None:
        if self.done:
            return

        handler = self.dispatch.get(name)
        if handler is None:
            self._logger.debug(f"Ignoring unknown tag '{name}'")
            return

        try:
            handler(self, "".join(self._data))
        except XmlRpcError as ex:
            self.error(ex)

    def text(self, chunk: str) -> None:
        if not self.done:
            self._data.append(chunk)

    def cdata(self, chunk: str) -> None:
        if not self.done:
            self._data.append(chunk)

    def end(self) -> None:
        if self.done:
            return

        if self._type is None or self._marks:
            self._deliver(StructuralError("Invalid XML-RPC message"))
        elif self._response_type == "fault":
            fault = self._stack[0] if self._stack else None
            self._deliver(FaultResponse.from_value(fault))
        else:
            self._deliver(None, self._stack)

    def error(self, exc: BaseException) -> None:
        if self.done:
            self._logger.debug(f"Discarding error after outcome: {exc}")
            return
        self._deliver(exc)

    # Element decoders

    def _end_boolean(self, data: str) -> None:
        if data == "1":
            self._push(True)
        elif data == "0":
            self._push(False)
        else:
            raise MalformedValue(f"Illegal boolean value {data!r}")

    def _end_int(self, data: str) -> None:
        text = self._integer_text(data)
        try:
            self._push(int(text))
        except ValueError as ex:
            # str-to-int conversion is capped in digits
            raise MalformedValue(f"Integer too long ({len(text)} characters)") from ex

    def _end_i8(self, data: str) -> None:
        self._push(BigInteger(self._integer_text(data).removeprefix("+")))

    @staticmethod
    def _integer_text(data: str) -> str:
        text = data.strip()
        if not INTEGER_PATTERN.fullmatch(text):
            raise MalformedValue(f"Expected an integer but got {data!r}")
        return text

    def _end_double(self, data: str) -> None:
        text = data.strip()
        if not DOUBLE_PATTERN.fullmatch(text):
            raise MalformedValue(f"Expected a double but got {data!r}")
        self._push(float(text))

    def _end_string(self, data: str) -> None:
        self._push(data)

    def _end_base64(self, data: str) -> None:
        try:
            self._push(base64.b64decode(data))
        except (binascii.Error, ValueError) as ex:
            raise MalformedValue(f"Invalid base64 content: {ex}") from ex

    def _end_datetime(self, data: str) -> None:
        self._push(self._dates.decode(data))

    def _end_nil(self, _: str) -> None:
        self._push(None)

    def _end_value(self, data: str) -> None:
        # a <value> without a type element is a string
        if self._value:
            self._end_string(data)

    def _end_array(self, _: str) -> None:
        self._push(self._pop_to_mark())

    def _end_struct(self, _: str) -> None:
        items = self._pop_to_mark()

        struct: dict[str, Any] = {}
        for i in range(0, len(items), 2):
            value = items[i + 1] if i + 1 < len(items) else None
            struct[str(items[i])] = value

        self._push(struct)

    def _end_params(self, _: str) -> None:
        self._response_type = "params"

    def _end_fault(self, _: str) -> None:
        self._response_type = "fault"

    def _end_method_response(self, _: str) -> None:
        self._type = "methodresponse"

    def _end_method_call(self, _: str) -> None:
        self._type = "methodcall"

    def _end_method_name(self, data: str) -> None:
        self._method_name = data

    def _end_noop(self, _: str) -> None:
        pass

    dispatch: dict[str, Callable[["Deserializer", str], None]] = {
        "BOOLEAN": _end_boolean,
        "INT": _end_int,
        "I4": _end_int,
        "I8": _end_i8,
        "DOUBLE": _end_double,
        "STRING": _end_string,
        "NAME": _end_string,
        "BASE64": _end_base64,
        "DATETIME.ISO8601": _end_datetime,
        "NIL": _end_nil,
        "VALUE": _end_value,
        "ARRAY": _end_array,
        "STRUCT": _end_struct,
        "PARAMS": _end_params,
        "FAULT": _end_fault,
        "METHODRESPONSE": _end_method_response,
        "METHODCALL": _end_method_call,
        "METHODNAME": _end_method_name,
        "DATA": _end_noop,
        "PARAM": _end_noop,
        "MEMBER": _end_noop,
    }

    def _pop_to_mark(self) -> list[Any]:
        if not self._marks:
            raise StructuralError("Closing tag without a matching array or struct")
        mark = self._marks.pop()
        items = self._stack[mark:]
        del self._stack[mark:]
        return items

    def _push(self, value: Any) -> None:
        self._stack.append(value)
        self._value = False

    def _deliver(self, error: BaseException | None, values: list[Any] | None = None) -> None:
        self._outcome = (error, values)

    def _values(self) -> list[Any]:
        if self._outcome is None:
            raise StructuralError("Message ended before it was complete")

        error, values = self._outcome
        if error is not None:
            raise error
        return values or []

    def _transport_failed(self, ex: Exception) -> None:
        error = TransportError(f"Failed to read message: {ex}")
        error.__cause__ = ex
        self.error(error)

    def _pump_sync(self, chunks: Iterable[bytes]) -> None:
        tokenizer = self.begin()
        iterator = iter(chunks)

        while not self.done:
            try:
                chunk = next(iterator)
            except StopIteration:
                tokenizer.close()
                break
            except Exception as ex:
                self._transport_failed(ex)
                break
            tokenizer.feed(chunk)

    async def _pump(self, chunks: AsyncIterable[bytes]) -> None:
        tokenizer = self.begin()
        iterator = aiter(chunks)

        while not self.done:
            try:
                chunk = await anext(iterator)
            except StopAsyncIteration:
                tokenizer.close()
                break
            except Exception as ex:
                self._transport_failed(ex)
                break
            tokenizer.feed(chunk)


DeserializerFactory = Callable[[], Deserializer]
"""
Creates a fresh single-use Deserializer, one per decoded message.
"""
