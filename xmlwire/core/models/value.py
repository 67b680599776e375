import re
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from xmlwire.core.ports.writer import XmlWriter


INT32_MIN = -(2 ** 31)
INT32_MAX = 2 ** 31 - 1

BIG_INTEGER_PATTERN = re.compile(r"-?[0-9]+")


@dataclass(frozen=True, slots=True)
class BigInteger:
    """
    A 64-bit-or-larger integer carried as its decimal text.

    The value travels as an `<i8>` element and is never converted through
    a float, so no precision is lost whatever the magnitude.
    """
    text: str

    def __post_init__(self) -> None:
        if not isinstance(self.text, str) or not BIG_INTEGER_PATTERN.fullmatch(self.text):
            raise ValueError(f"Invalid big integer text: {self.text!r}")

    @classmethod
    def from_int(cls, value: int) -> "BigInteger":
        return cls(str(value))

    def __int__(self) -> int:
        return int(self.text)

    def __str__(self) -> str:
        return self.text


@runtime_checkable
class CustomType(Protocol):
    """
    Capability implemented by vendor-specific wire types.

    The serializer hands the current `<value>` cursor to `serialize()`
    instead of looking the value up in its own type table.
    """
    tag_name: str

    def serialize(self, writer: XmlWriter) -> XmlWriter:
        ...


class RawCustomType:
    """Writes `raw` verbatim as the text of a `<tag_name>` element."""

    tag_name = "customType"

    def __init__(self, raw: str, tag_name: str | None = None) -> None:
        self.raw = raw
        if tag_name is not None:
            self.tag_name = tag_name

    def serialize(self, writer: XmlWriter) -> XmlWriter:
        return writer.element(self.tag_name).text(self.raw)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.raw!r}, tag_name={self.tag_name!r})"


@dataclass
class MethodCall:
    """A decoded `<methodCall>` envelope."""
    name: str
    """
    Non-empty method name taken from `<methodName>`.
    """

    params: list[Any] = field(default_factory=list)
    """
    Top-level parameter values, in document order.
    """


@dataclass
class MethodResponse:
    """
    A `<methodResponse>` envelope: either a single result or a fault value.
    """
    result: Any = None
    fault: Any = None
    is_fault: bool = False

    @classmethod
    def from_fault(cls, fault: Any) -> "MethodResponse":
        return cls(fault=fault, is_fault=True)
