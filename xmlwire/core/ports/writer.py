from typing import Callable, Protocol


class XmlWriter(Protocol):
    """
    Cursor over an XML document under construction.

    Every method returns a cursor so calls can be chained the way the
    serializer walks the value tree:

        writer.element("member").element("name").text("key").up()

    Implementations must:
    - escape text written with `text()`
    - write `cdata()` content as a literal section
    - start `document()` with an XML declaration
    """

    def element(self, name: str) -> "XmlWriter":
        """Append a child element and return a cursor on it."""

    def text(self, value: str) -> "XmlWriter":
        """Set the escaped text content of the current element."""

    def cdata(self, value: str) -> "XmlWriter":
        """Set the content of the current element as a CDATA section."""

    def up(self) -> "XmlWriter":
        """Return a cursor on the parent element."""

    def document(self) -> str:
        """Serialize the whole document, declaration included."""


WriterFactory = Callable[[str, str | None], XmlWriter]
"""
Creates a new document with the given root element name and optional
declared text encoding, and returns a cursor on the root.
"""
