from lxml import etree

from xmlwire.core.ports.writer import XmlWriter


class LxmlWriter(XmlWriter):
    """
    XmlWriter cursor over an lxml element tree.

    Each cursor wraps one element; `element()` returns a cursor on the new
    child and `up()` one on the parent (the root stays on itself).
    """
    DEFAULT_ENCODING = "utf-8"

    def __init__(self, element: etree._Element, encoding: str) -> None:
        self._element = element
        self._encoding = encoding

    @classmethod
    def create(cls, root: str, encoding: str | None = None) -> "LxmlWriter":
        return cls(etree.Element(root), encoding or cls.DEFAULT_ENCODING)

    def element(self, name: str) -> "LxmlWriter":
        return LxmlWriter(etree.SubElement(self._element, name), self._encoding)

    def text(self, value: str) -> "LxmlWriter":
        self._element.text = value
        return self

    def cdata(self, value: str) -> "LxmlWriter":
        self._element.text = etree.CDATA(value)
        return self

    def up(self) -> "LxmlWriter":
        parent = self._element.getparent()
        if parent is None:
            return self
        return LxmlWriter(parent, self._encoding)

    def document(self) -> str:
        root = self._element.getroottree().getroot()
        data = etree.tostring(root, xml_declaration=True, encoding=self._encoding)
        return data.decode(self._encoding)
