import logging

from aiohttp import web

from xmlwire.core.codec.deserializer import DeserializerFactory
from xmlwire.core.codec.serializer import Serializer
from xmlwire.core.models.config import ServerConfig
from xmlwire.core.models.state import ServerState
from xmlwire.core.routing.router import MethodRouter
from xmlwire.core.transport.handler import XmlRpcHandler


class XmlRpcServer:
    """
    Listens for HTTP connections and answers XML-RPC calls.

    The server is an aiohttp application with a single catch-all route
    bound to an XmlRpcHandler; path and method checks happen in the
    handler so that every answer closes the connection. Oversized request
    heads are rejected with a 400 by aiohttp's parser.

    Shutdown is aiohttp's graceful shutdown: the listening socket is
    closed, idle connections are dropped, calls already dispatched get
    `timeout_graceful_shutdown` seconds to send their response, then
    whatever is left is cancelled.
    """
    def __init__(
        self,
        config: ServerConfig,
        router: MethodRouter,
        serializer: Serializer,
        deserializer_factory: DeserializerFactory,
    ) -> None:
        self._config = config
        self.state = ServerState()
        self._handler = XmlRpcHandler(
            config=config,
            server_state=self.state,
            router=router,
            serializer=serializer,
            deserializer_factory=deserializer_factory,
        )
        self._logger = logging.getLogger("core.transport.server")

        self._runner: web.AppRunner | None = None

    @property
    def port(self) -> int | None:
        """Port actually bound, useful when the configured port is 0."""
        if self._runner is None or not self._runner.addresses:
            return None
        return self._runner.addresses[0][1]

    def create_app(self) -> web.Application:
        app = web.Application(client_max_size=self._config.max_body_size)
        app.router.add_route("*", "/{tail:.*}", self._handler.handle)
        return app

    async def start(self) -> None:
        config = self._config
        self._runner = web.AppRunner(
            self.create_app(),
            handle_signals=False,
            shutdown_timeout=config.timeout_graceful_shutdown,
            max_line_size=config.max_header_size,
            max_field_size=config.max_header_size,
        )
        await self._runner.setup()

        site = web.TCPSite(self._runner, host=config.host, port=config.port, backlog=config.backlog)
        await site.start()
        self._logger.info(f"Listening on {config.host}:{self.port}")

    async def shutdown(self) -> None:
        if self._runner is None:
            return

        pending = {task for task in self.state.tasks if not task.done()}
        if pending:
            self._logger.info(f"Waiting for {len(pending)} in-flight call(s) to complete.")

        await self._runner.cleanup()
        self._runner = None

        cancelled = [task for task in pending if task.cancelled()]
        if cancelled:
            self._logger.error(f"Cancelled {len(cancelled)} call(s), timeout graceful shutdown exceeded")
        self._logger.info("Server stopped")

