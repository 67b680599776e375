import asyncio
import json
from typing import Any

from xmlwire.bootstrap.config.loader import get_cli_args
from xmlwire.bootstrap.deps import get_client, get_renderer, get_server
from xmlwire.core.helpers.utils import (
    install_shutdown_signals,
    remove_shutdown_signals,
    scan,
    setup_logging,
)
from xmlwire.core.models.errors import XmlRpcError


def parse_param(raw: str) -> Any:
    """Read a command line parameter as a JSON literal, or keep it as text."""
    try:
        return json.loads(raw)
    except ValueError:
        return raw


async def serve() -> None:
    stop_event = asyncio.Event()
    installed = install_shutdown_signals(stop_event)

    server = get_server()
    await server.start()
    try:
        await stop_event.wait()
    finally:
        remove_shutdown_signals(installed)
        await server.shutdown()


async def call(method: str, params: list[Any]) -> Any:
    return await get_client().method_call(method, params)


@scan("xmlwire.bootstrap.handlers")
def main():
    cli = get_cli_args()
    setup_logging(cli.log_level)

    if cli.command == "serve":
        try:
            asyncio.run(serve())
        except KeyboardInterrupt:
            pass
        return

    params = [parse_param(raw) for raw in cli.params]
    try:
        result = asyncio.run(call(cli.method, params))
    except XmlRpcError as ex:
        raise SystemExit(f"[{type(ex).__name__}] {ex}")

    print(get_renderer().render(result), end="")


if __name__ == "__main__":
    main()
