import functools
from datetime import timezone

import pytest

from xmlwire.core.codec.dates import DateFormatOptions, DateTimeCodec
from xmlwire.core.codec.deserializer import Deserializer
from xmlwire.core.codec.serializer import Serializer
from xmlwire.infra.lxml_tokenizer import LxmlTokenizer
from xmlwire.infra.lxml_writer import LxmlWriter


@pytest.fixture
def utc_clock(monkeypatch):
    """Pin the assumed local offset of decoded datetimes to UTC."""
    monkeypatch.setattr("xmlwire.core.codec.dates.current_offset", lambda: timezone.utc)


@pytest.fixture
def dates() -> DateTimeCodec:
    return DateTimeCodec(DateFormatOptions(local=False, include_milliseconds=True))


@pytest.fixture
def serializer(dates) -> Serializer:
    return Serializer(writer_factory=LxmlWriter.create, dates=dates)


@pytest.fixture
def deserializer_factory(dates):
    return functools.partial(Deserializer, LxmlTokenizer, dates)


@pytest.fixture
def deserializer(deserializer_factory) -> Deserializer:
    return deserializer_factory()
