from datetime import datetime, timedelta, timezone

import pytest

from xmlwire.core.codec.dates import DateFormatOptions, DateTimeCodec, format_offset
from xmlwire.core.models.errors import MalformedValue


@pytest.fixture
def codec():
    return DateTimeCodec()


@pytest.mark.ut
def test_decode_compact_form_assumes_local_offset(codec, utc_clock):
    ts = codec.decode("20240102T03:04:05")
    assert ts == datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    assert ts.utcoffset() == timedelta(0)


@pytest.mark.ut
def test_decode_applies_current_offset_when_missing(codec, monkeypatch):
    plus_two = timezone(timedelta(hours=2))
    monkeypatch.setattr("xmlwire.core.codec.dates.current_offset", lambda: plus_two)

    ts = codec.decode("2024-01-02T03:04:05")

    assert ts.utcoffset() == timedelta(hours=2)
    assert ts.astimezone(timezone.utc) == datetime(2024, 1, 2, 1, 4, 5, tzinfo=timezone.utc)


@pytest.mark.ut
def test_decode_with_hyphens_milliseconds_and_zulu(codec):
    ts = codec.decode("2024-01-02T03:04:05.123Z")
    assert ts == datetime(2024, 1, 2, 3, 4, 5, 123000, tzinfo=timezone.utc)


@pytest.mark.ut
@pytest.mark.parametrize(
    "text, offset",
    [
        ("20240102T03:04:05+05:30", timedelta(hours=5, minutes=30)),
        ("20240102T03:04:05+0530", timedelta(hours=5, minutes=30)),
        ("20240102T03:04:05-08", timedelta(hours=-8)),
        ("20240102T030405-08:00", timedelta(hours=-8)),
    ],
)
def test_decode_explicit_offsets(codec, text, offset):
    ts = codec.decode(text)
    assert ts.utcoffset() == offset
    assert (ts.hour, ts.minute, ts.second) == (3, 4, 5)


@pytest.mark.ut
def test_decode_missing_time_fields_default_to_zero(codec, utc_clock):
    assert codec.decode("20240102") == datetime(2024, 1, 2, tzinfo=timezone.utc)
    assert codec.decode("20240102T07") == datetime(2024, 1, 2, 7, tzinfo=timezone.utc)
    assert codec.decode("20240102T07:30Z") == datetime(2024, 1, 2, 7, 30, tzinfo=timezone.utc)


@pytest.mark.ut
def test_decode_long_fraction_is_truncated_to_microseconds(codec):
    ts = codec.decode("20240102T03:04:05.1234567Z")
    assert ts.microsecond == 123456


@pytest.mark.ut
@pytest.mark.parametrize("text", ["", "yesterday", "2024/01/02", "20241302T00:00:00Z", "2024-01-02 03:04"])
def test_decode_malformed_text(codec, text):
    with pytest.raises(MalformedValue):
        codec.decode(text)


@pytest.mark.ut
@pytest.mark.parametrize(
    "options",
    [
        DateFormatOptions(local=False),
        DateFormatOptions(local=False, include_offset=True),
        DateFormatOptions(local=False, hyphens=True, colons=False),
        DateFormatOptions(local=False, include_milliseconds=True),
    ],
)
def test_encode_utc_always_ends_with_z(codec, options):
    ts = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone(timedelta(hours=1)))
    assert codec.encode(ts, options).endswith("Z")


@pytest.mark.ut
def test_encode_utc_fields_and_separators(codec):
    ts = datetime(2024, 1, 2, 3, 4, 5, 678000, tzinfo=timezone.utc)

    assert codec.encode(ts, DateFormatOptions(local=False)) == "20240102T03:04:05Z"
    assert codec.encode(ts, DateFormatOptions(local=False, hyphens=True, colons=False)) == "2024-01-02T030405Z"
    assert codec.encode(ts, DateFormatOptions(local=False, include_milliseconds=True)) == "20240102T03:04:05.678Z"


@pytest.mark.ut
def test_encode_converts_to_utc(codec):
    ts = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone(timedelta(hours=5)))
    assert codec.encode(ts, DateFormatOptions(local=False)) == "20240101T22:04:05Z"


@pytest.mark.ut
def test_encode_local_without_offset_has_no_suffix(codec):
    ts = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    local = ts.astimezone()

    text = codec.encode(ts, DateFormatOptions(local=True))

    assert text == local.strftime("%Y%m%dT%H:%M:%S")


@pytest.mark.ut
def test_encode_local_with_offset(codec):
    ts = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    local = ts.astimezone()

    text = codec.encode(ts, DateFormatOptions(local=True, include_offset=True))

    assert text.endswith(format_offset(local.utcoffset()))
    assert text[-6] in "+-"


@pytest.mark.ut
def test_encode_uses_codec_options_by_default():
    codec = DateTimeCodec(DateFormatOptions(local=False, hyphens=True))
    ts = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    assert codec.encode(ts) == "2024-01-02T03:04:05Z"


@pytest.mark.ut
@pytest.mark.parametrize(
    "offset, text",
    [
        (timedelta(0), "+00:00"),
        (timedelta(hours=2), "+02:00"),
        (timedelta(hours=-3, minutes=-30), "-03:30"),
        (timedelta(hours=5, minutes=45), "+05:45"),
    ],
)
def test_format_offset(offset, text):
    assert format_offset(offset) == text


@pytest.mark.ut
def test_round_trip_keeps_milliseconds():
    codec = DateTimeCodec(DateFormatOptions(local=False, include_milliseconds=True))
    ts = datetime(2023, 12, 31, 23, 59, 59, 999000, tzinfo=timezone.utc)
    assert codec.decode(codec.encode(ts)) == ts


@pytest.mark.ut
def test_round_trip_without_milliseconds_keeps_seconds():
    codec = DateTimeCodec(DateFormatOptions(local=False))
    ts = datetime(2023, 12, 31, 23, 59, 59, 999000, tzinfo=timezone.utc)
    assert codec.decode(codec.encode(ts)) == ts.replace(microsecond=0)
