import logging
from collections.abc import MutableMapping
from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime

from multidict import CIMultiDict, CIMultiDictProxy


@dataclass
class Cookie:
    value: str
    expires: datetime | None = None
    secure: bool = False

    def expired(self, now: datetime | None = None) -> bool:
        if self.expires is None:
            return False
        return (now or datetime.now(timezone.utc)) > self.expires


class CookieJar:
    """
    Minimal client-side cookie store.

    It reads every `Set-Cookie` header of a response (name, value and an
    optional `Expires` attribute, other attributes are ignored) and writes
    the unexpired cookies back as a single `Cookie` request header.
    Expired entries are dropped whenever they are looked at.

    The jar knows nothing about domains or paths: it is meant to be
    attached to one client talking to one server.
    """

    def __init__(self) -> None:
        self._cookies: dict[str, Cookie] = {}
        self._logger = logging.getLogger("core.transport.cookies")

    def get(self, name: str) -> str | None:
        if self._check_not_expired(name):
            return self._cookies[name].value
        return None

    def set(
        self,
        name: str,
        value: str,
        expires: datetime | None = None,
        secure: bool = False,
    ) -> None:
        cookie = Cookie(value=value, expires=expires, secure=secure)
        if cookie.expired():
            self._cookies.pop(name, None)
            return
        self._cookies[name] = cookie

    def expiration(self, name: str) -> datetime | None:
        cookie = self._cookies.get(name)
        return cookie.expires if cookie else None

    def parse_response(self, headers: CIMultiDictProxy[str] | CIMultiDict[str]) -> None:
        """Store the cookies of every `Set-Cookie` header."""
        for raw in headers.getall("Set-Cookie", []):
            params = raw.split(";")
            name, sep, value = params[0].partition("=")
            if not sep or not name.strip():
                self._logger.debug(f"Ignoring malformed cookie: {raw!r}")
                continue

            expires = None
            for param in params[1:]:
                key, _, attr = param.strip().partition("=")
                if key.lower() == "expires":
                    expires = self._parse_expires(attr.strip())

            self.set(name.strip(), value.strip(), expires=expires)

    def compose_request(self, headers: MutableMapping[str, str]) -> None:
        cookie = str(self)
        if cookie:
            headers["Cookie"] = cookie

    def __str__(self) -> str:
        names = [name for name in list(self._cookies) if self._check_not_expired(name)]
        return ";".join(f"{name}={self._cookies[name].value}" for name in names)

    def __len__(self) -> int:
        return len(self._cookies)

    def _check_not_expired(self, name: str) -> bool:
        cookie = self._cookies.get(name)
        if cookie is None:
            return False
        if cookie.expired():
            del self._cookies[name]
            return False
        return True

    def _parse_expires(self, raw: str) -> datetime | None:
        try:
            expires = parsedate_to_datetime(raw)
        except (TypeError, ValueError):
            self._logger.debug(f"Ignoring invalid cookie expiry: {raw!r}")
            return None

        if expires.tzinfo is None:
            expires = expires.replace(tzinfo=timezone.utc)
        return expires
