import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from xmlwire.core.models.errors import MalformedValue


ISO8601 = re.compile(
    r"(?P<year>[0-9]{4})-?(?P<month>[0-9]{2})-?(?P<day>[0-9]{2})"
    r"(?:T(?P<hour>[0-9]{2})"
    r"(?::?(?P<minute>[0-9]{2}))?"
    r"(?::?(?P<second>[0-9]{2}))?"
    r"(?:\.(?P<fraction>[0-9]+))?"
    r"(?P<offset>Z|(?P<sign>[+-])(?P<offset_hours>[0-9]{2})(?::?(?P<offset_minutes>[0-9]{2}))?)?"
    r")?"
)


@dataclass(frozen=True, slots=True)
class DateFormatOptions:
    """
    Controls how `dateTime.iso8601` values are written.

    The defaults produce the compact form most XML-RPC peers expect:
    `20240102T03:04:05` in local time without an offset.
    """
    colons: bool = True
    """Separate time fields with ':'."""

    hyphens: bool = False
    """Separate date fields with '-'."""

    local: bool = True
    """Write local calendar fields instead of UTC ones."""

    include_milliseconds: bool = False
    """Append '.mmm' after the seconds."""

    include_offset: bool = False
    """Append the '±HH:MM' local offset (only meaningful with `local`)."""


def current_offset() -> timezone:
    """Return the offset of the machine clock right now, as a fixed timezone."""
    offset = datetime.now().astimezone().utcoffset() or timedelta(0)
    return timezone(offset)


def format_offset(offset: timedelta) -> str:
    minutes = int(offset.total_seconds()) // 60
    sign = "+" if minutes >= 0 else "-"
    hours, minutes = divmod(abs(minutes), 60)
    return f"{sign}{hours:02d}:{minutes:02d}"


class DateTimeCodec:
    """
    Converts between ISO-8601 text and timezone-aware datetimes.

    The codec holds only its immutable options. Both directions are pure
    apart from reading the machine clock offset when a decoded value has
    no offset of its own, so one instance can be shared between threads.
    """

    def __init__(self, options: DateFormatOptions | None = None) -> None:
        self.options = options or DateFormatOptions()

    def decode(self, text: str) -> datetime:
        """
        Parse `text` into an aware datetime.

        Missing time fields default to zero. When the text carries no
        offset, the current local offset is assumed.
        """
        match = ISO8601.fullmatch(text.strip())
        if match is None:
            raise MalformedValue(f"Expected an ISO8601 datetime but got {text!r}")

        parts = match.groupdict()
        fraction = (parts["fraction"] or "")[:6].ljust(6, "0")

        try:
            return datetime(
                year=int(parts["year"]),
                month=int(parts["month"]),
                day=int(parts["day"]),
                hour=int(parts["hour"] or 0),
                minute=int(parts["minute"] or 0),
                second=int(parts["second"] or 0),
                microsecond=int(fraction),
                tzinfo=self._decode_offset(parts),
            )
        except ValueError as ex:
            raise MalformedValue(f"Invalid ISO8601 datetime {text!r}: {ex}") from ex

    def encode(self, ts: datetime, options: DateFormatOptions | None = None) -> str:
        """
        Format `ts` with the codec options, or with `options` when given.
        Naive datetimes are taken as local time.
        """
        opts = options or self.options

        if opts.local:
            ts = ts.astimezone()
        else:
            ts = ts.astimezone(timezone.utc)

        date_sep = "-" if opts.hyphens else ""
        time_sep = ":" if opts.colons else ""

        parts = [
            date_sep.join((f"{ts.year:04d}", f"{ts.month:02d}", f"{ts.day:02d}")),
            "T",
            time_sep.join((f"{ts.hour:02d}", f"{ts.minute:02d}", f"{ts.second:02d}")),
        ]

        if opts.include_milliseconds:
            parts.append(f".{ts.microsecond // 1000:03d}")

        if not opts.local:
            parts.append("Z")
        elif opts.include_offset:
            parts.append(format_offset(ts.utcoffset() or timedelta(0)))

        return "".join(parts)

    @staticmethod
    def _decode_offset(parts: dict[str, str | None]) -> timezone:
        if parts["offset"] is None:
            return current_offset()

        if parts["offset"] == "Z":
            return timezone.utc

        delta = timedelta(
            hours=int(parts["offset_hours"]),
            minutes=int(parts["offset_minutes"] or 0),
        )
        if parts["sign"] == "-":
            delta = -delta

        return timezone(delta)
