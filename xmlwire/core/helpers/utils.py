import asyncio
import functools
import importlib
import logging
import pkgutil
import signal
from collections.abc import Callable


SHUTDOWN_SIGNALS = (
    signal.SIGINT,
    signal.SIGTERM,
)


def install_shutdown_signals(
    stop_event: asyncio.Event,
    loop: asyncio.AbstractEventLoop | None = None,
) -> list[signal.Signals]:
    """
    Set `stop_event` when the process receives SIGINT or SIGTERM.

    Returns the signals that were hooked, to be handed back to
    `remove_shutdown_signals()`. Loops that cannot watch signals (Windows,
    or a loop running outside the main thread) hook none and the caller
    falls back to KeyboardInterrupt.
    """
    loop = loop or asyncio.get_running_loop()
    installed: list[signal.Signals] = []

    for sig in SHUTDOWN_SIGNALS:
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except (NotImplementedError, RuntimeError, ValueError):
            continue
        installed.append(sig)

    return installed


def remove_shutdown_signals(
    installed: list[signal.Signals],
    loop: asyncio.AbstractEventLoop | None = None,
) -> None:
    loop = loop or asyncio.get_running_loop()
    for sig in installed:
        loop.remove_signal_handler(sig)


def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=level,
        format='%(asctime)s %(levelname)-8s [%(name)s:%(funcName)s] : %(message)s',
    )


def import_submodules(package: str) -> list[str]:
    """Import every direct submodule of `package` and return their names."""
    py_package = importlib.import_module(package)
    names = [f"{package}.{info.name}" for info in pkgutil.iter_modules(py_package.__path__)]

    for name in names:
        importlib.import_module(name)

    return names


def scan(package: str):
    """
    Decorator importing the submodules of `package` before the decorated
    function runs, so that method handlers registered at import time exist.
    """
    def decorator(func: Callable):

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            import_submodules(package)
            return func(*args, **kwargs)

        return wrapper

    return decorator
