import base64
import logging
import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from xmlwire.core.codec.dates import DateTimeCodec
from xmlwire.core.models.errors import FaultResponse
from xmlwire.core.models.value import (
    INT32_MAX,
    INT32_MIN,
    BigInteger,
    CustomType,
    MethodCall,
    MethodResponse,
)
from xmlwire.core.ports.writer import WriterFactory, XmlWriter


CDATA_END = "]]>"


@dataclass
class Frame:
    """
    One pending value of the tree walk.

    Compound values keep their frame on the stack while their children
    are written; `index` is the position of the next child and `keys`
    the member names of a struct.
    """
    value: Any
    cursor: XmlWriter
    index: int | None = None
    keys: list[Any] | None = None


class Serializer:
    """
    Encodes method calls, responses and faults into XML-RPC documents.

    The value tree is walked depth-first with an explicit stack of frames
    instead of recursion, so nesting depth is bounded by memory only.
    Each frame writes its `<value>` element the first time it is visited;
    simple values are then popped, compound ones stay on the stack and
    push one frame per child until exhausted.

    Values of an unsupported kind are skipped: nothing is written for
    them and no error is raised.
    """

    def __init__(
        self,
        writer_factory: WriterFactory,
        dates: DateTimeCodec | None = None,
    ) -> None:
        self._writer_factory = writer_factory
        self._dates = dates or DateTimeCodec()
        self._logger = logging.getLogger("core.codec.serializer")

    def encode_call(
        self,
        name: str,
        params: Sequence[Any] | None = None,
        encoding: str | None = None,
    ) -> str:
        root = self._writer_factory("methodCall", encoding)
        cursor = root.element("methodName").text(name).up().element("params")

        for param in params or ():
            if not self.supports(param):
                self._skip(param)
                continue
            self.write_value(param, cursor.element("param"))

        return root.document()

    def encode_response(self, value: Any) -> str:
        root = self._writer_factory("methodResponse", None)
        self.write_value(value, root.element("params").element("param"))
        return root.document()

    def encode_fault(self, fault: Any) -> str:
        if isinstance(fault, FaultResponse):
            fault = fault.to_dict()

        root = self._writer_factory("methodResponse", None)
        self.write_value(fault, root.element("fault"))
        return root.document()

    def encode(self, message: MethodCall | MethodResponse) -> str:
        """Encode a MethodCall or MethodResponse envelope."""
        if isinstance(message, MethodCall):
            return self.encode_call(message.name, message.params)
        if message.is_fault:
            return self.encode_fault(message.fault)
        return self.encode_response(message.result)

    def write_value(self, value: Any, cursor: XmlWriter) -> None:
        """Write `value` as a `<value>` element under `cursor`."""
        stack = [Frame(value=value, cursor=cursor)]

        while stack:
            frame = stack[-1]

            if frame.index is None and not self._open_compound(frame):
                stack.pop()
                continue

            child = self._next_child(frame)
            if child is None:
                stack.pop()
            else:
                stack.append(child)

    def _open_compound(self, frame: Frame) -> bool:
        """
        Write the `<value>` element of a fresh frame.

        Returns True when the frame is an array or struct whose children
        still have to be walked.
        """
        value = frame.value

        if isinstance(value, CustomType):
            value.serialize(frame.cursor.element("value"))
            return False

        if isinstance(value, (list, tuple)):
            frame.cursor = frame.cursor.element("value").element("array").element("data")
            frame.index = 0
            return True

        if isinstance(value, Mapping):
            frame.cursor = frame.cursor.element("value").element("struct")
            frame.keys = list(value.keys())
            frame.index = 0
            return True

        if not self.supports(value):
            self._skip(value)
            return False

        self._write_simple(value, frame.cursor.element("value"))
        return False

    def _next_child(self, frame: Frame) -> Frame | None:
        if frame.keys is not None:
            while frame.index < len(frame.keys):
                key = frame.keys[frame.index]
                frame.index += 1
                value = frame.value[key]
                if not self.supports(value):
                    self._skip(value)
                    continue
                member = frame.cursor.element("member").element("name").text(str(key)).up()
                return Frame(value=value, cursor=member)
            return None

        while frame.index < len(frame.value):
            value = frame.value[frame.index]
            frame.index += 1
            if not self.supports(value):
                self._skip(value)
                continue
            return Frame(value=value, cursor=frame.cursor)
        return None

    @staticmethod
    def supports(value: Any) -> bool:
        """Whether `value` is of a kind this serializer can write."""
        return value is None or isinstance(
            value,
            (
                CustomType,
                list,
                tuple,
                Mapping,
                bool,
                int,
                float,
                str,
                bytes,
                bytearray,
                memoryview,
                BigInteger,
                datetime,
            ),
        )

    def _skip(self, value: Any) -> None:
        self._logger.debug(f"Skipping unsupported value of type {type(value).__name__}")

    def _write_simple(self, value: Any, cursor: XmlWriter) -> None:
        if value is None:
            cursor.element("nil")
        elif isinstance(value, bool):
            cursor.element("boolean").text("1" if value else "0")
        elif isinstance(value, BigInteger):
            cursor.element("i8").text(value.text)
        elif isinstance(value, (int, float)):
            self._write_number(value, cursor)
        elif isinstance(value, str):
            self._write_string(value, cursor)
        elif isinstance(value, (bytes, bytearray, memoryview)):
            cursor.element("base64").text(base64.b64encode(value).decode("ascii"))
        elif isinstance(value, datetime):
            cursor.element("dateTime.iso8601").text(self._dates.encode(value))

    @staticmethod
    def _write_number(value: int | float, cursor: XmlWriter) -> None:
        if isinstance(value, float):
            if not math.isfinite(value) or not value.is_integer():
                cursor.element("double").text(repr(value))
                return
            value = int(value)

        if INT32_MIN <= value <= INT32_MAX:
            cursor.element("int").text(str(value))
        else:
            cursor.element("i8").text(str(value))

    @staticmethod
    def _write_string(value: str, cursor: XmlWriter) -> None:
        if not value:
            cursor.element("string")
        elif ("<" not in value and "&" not in value) or CDATA_END in value:
            cursor.element("string").text(value)
        else:
            cursor.element("string").cdata(value)
