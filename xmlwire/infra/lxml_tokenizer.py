import logging
from typing import Any

from lxml import etree

from xmlwire.core.models.errors import StructuralError
from xmlwire.core.ports.tokenizer import EventSink, Tokenizer


class _SinkTarget:
    """
    lxml parser target translating SAX-like callbacks into sink events.

    lxml reports CDATA sections through `data()` like any other text;
    the deserializer treats both the same way.
    """
    def __init__(self, sink: EventSink) -> None:
        self._sink = sink

    def start(self, tag: str, attrib: Any) -> None:
        self._sink.open_tag(self._normalize(tag))

    def end(self, tag: str) -> None:
        self._sink.close_tag(self._normalize(tag))

    def data(self, data: str) -> None:
        self._sink.text(data)

    def close(self) -> None:
        # also called by lxml before it raises a syntax error;
        # LxmlTokenizer.close() sends end() on success only
        pass

    @staticmethod
    def _normalize(tag: str) -> str:
        # drop any namespace, the XML-RPC vocabulary has none
        return etree.QName(tag).localname.upper()


class LxmlTokenizer(Tokenizer):
    """
    Incremental tokenizer backed by lxml's feed parser.

    Entity resolution and network access are disabled; the huge tree
    option lifts libxml2's default nesting cap. libxml2 keeps a hard
    depth limit of its own (2048 levels in current releases), so
    documents nested deeper than that end with a StructuralError even
    though the deserializer itself has no depth limit.

    Syntax errors are reported once through `sink.error()` as
    StructuralError; any input fed afterwards is dropped.
    """
    def __init__(self, sink: EventSink) -> None:
        self._sink = sink
        self._parser = etree.XMLParser(
            target=_SinkTarget(sink),
            resolve_entities=False,
            no_network=True,
            huge_tree=True,
        )
        self._failed = False
        self._closed = False
        self._logger = logging.getLogger("infra.lxml_tokenizer")

    def feed(self, data: bytes) -> None:
        if self._failed or self._closed:
            return

        try:
            self._parser.feed(data)
        except etree.XMLSyntaxError as ex:
            self._fail(ex)

    def close(self) -> None:
        if self._failed or self._closed:
            return

        self._closed = True
        try:
            self._parser.close()
        except etree.XMLSyntaxError as ex:
            self._fail(ex)
            return

        self._sink.end()

    def _fail(self, ex: etree.XMLSyntaxError) -> None:
        self._failed = True
        self._logger.debug(f"Malformed XML document: {ex}")
        error = StructuralError(f"Malformed XML document: {ex}")
        error.__cause__ = ex
        self._sink.error(error)
