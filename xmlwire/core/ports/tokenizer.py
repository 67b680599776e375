from typing import Callable, Protocol


class EventSink(Protocol):
    """
    Receives tokenizer events in document order.

    Tag names are delivered upper-cased: `<dateTime.iso8601>` arrives as
    `DATETIME.ISO8601`. Handlers never block.
    """

    def open_tag(self, name: str) -> None:
        ...

    def close_tag(self, name: str) -> None:
        ...

    def text(self, chunk: str) -> None:
        ...

    def cdata(self, chunk: str) -> None:
        ...

    def end(self) -> None:
        ...

    def error(self, exc: BaseException) -> None:
        ...


class Tokenizer(Protocol):
    """
    Incremental XML tokenizer bound to a single EventSink.

    `feed()` may be called with arbitrary slices of the document; events
    are emitted as soon as enough input is available. `close()` flushes
    the remaining input and emits `end()` (or `error()` for a truncated
    or malformed document).
    """

    def feed(self, data: bytes) -> None:
        ...

    def close(self) -> None:
        ...


TokenizerFactory = Callable[[EventSink], Tokenizer]
