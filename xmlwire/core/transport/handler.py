import asyncio
import logging

from aiohttp import web

from xmlwire.core.codec.deserializer import DeserializerFactory
from xmlwire.core.codec.serializer import Serializer
from xmlwire.core.models.config import ServerConfig
from xmlwire.core.models.errors import FaultResponse, XmlRpcError
from xmlwire.core.models.state import ServerState
from xmlwire.core.models.value import MethodResponse
from xmlwire.core.routing.router import APPLICATION_ERROR, MethodRouter


PARSE_ERROR = -32700
"""
Fault code answered when the request body is not a valid method call.
"""

READ_CHUNK_SIZE = 64 * 1024


class XmlRpcHandler:
    """
    aiohttp request handler serving XML-RPC calls.

    The request is checked before any body byte is read: POST only, the
    expected path, and a Content-Length within `max_body_size`. The body
    is then streamed into a fresh Deserializer, so the call is decoded
    while it is still being received.

    The decoded call is resolved through the MethodRouter and run as a
    task registered in ServerState, which is what graceful shutdown waits
    for. Every response closes the connection; unknown methods get an
    empty 404, requests that do not decode get a fault.
    """
    def __init__(
        self,
        config: ServerConfig,
        server_state: ServerState,
        router: MethodRouter,
        serializer: Serializer,
        deserializer_factory: DeserializerFactory,
    ) -> None:
        self._config = config
        self._tasks = server_state.tasks
        self._router = router
        self._serializer = serializer
        self._deserializer_factory = deserializer_factory
        self._logger = logging.getLogger("core.transport.handler")

    async def handle(self, request: web.Request) -> web.Response:
        who = request.remote or ""

        if request.method != "POST":
            return self._reply(405, headers={"Allow": "POST"})

        if self._config.path is not None and request.path != self._config.path:
            self._logger.warning(f"{who} - Unknown path '{request.path}'")
            return self._reply(404)

        length = request.content_length
        if length is None:
            return self._reply(411)

        if length > self._config.max_body_size:
            self._logger.warning(f"{who} - Request body too large ({length} bytes)")
            return self._reply(413)

        deserializer = self._deserializer_factory()
        try:
            call = await deserializer.decode_call_stream(request.content.iter_chunked(READ_CHUNK_SIZE))
        except XmlRpcError as exc:
            self._logger.warning(f"{who} - Invalid method call: {exc}")
            return self._reply_message(MethodResponse.from_fault({
                "faultCode": PARSE_ERROR,
                "faultString": str(exc),
            }))

        if self._router.resolve(call.name) is None:
            self._logger.warning(f"{who} - Unknown method '{call.name}'")
            return self._reply(404)

        self._logger.debug(f"{who} - Calling '{call.name}'")
        task = asyncio.create_task(self._router.dispatch(call))
        task.add_done_callback(self._tasks.discard)
        self._tasks.add(task)

        return self._reply_message(await task)

    def _reply_message(self, message: MethodResponse) -> web.Response:
        try:
            body = self._serializer.encode(message)
        except Exception as exc:
            # e.g. a result string holding characters XML cannot carry
            self._logger.error(f"Unable to encode the response: {exc}", exc_info=exc)
            body = self._serializer.encode_fault(
                FaultResponse(APPLICATION_ERROR, f"Unable to encode the response: {exc}")
            )

        response = web.Response(body=body.encode("utf-8"), content_type="text/xml", charset="utf-8")
        response.force_close()
        return response

    @staticmethod
    def _reply(status: int, headers: dict[str, str] | None = None) -> web.Response:
        response = web.Response(status=status, headers=headers)
        response.force_close()
        return response
