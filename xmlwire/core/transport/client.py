import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

import aiohttp
from multidict import CIMultiDict

from xmlwire.core.codec.deserializer import DeserializerFactory
from xmlwire.core.codec.serializer import Serializer
from xmlwire.core.models.config import ClientConfig
from xmlwire.core.models.errors import NotFound, TransportError
from xmlwire.core.transport.cookies import CookieJar


READ_CHUNK_SIZE = 64 * 1024


@dataclass
class HttpRequest:
    """What was sent, kept on TransportError for diagnostics."""
    method: str
    url: str
    headers: CIMultiDict[str] = field(default_factory=CIMultiDict)
    body: bytes = b""


class XmlRpcClient:
    """
    Asynchronous XML-RPC client over HTTP/1.1.

    Every call opens its own aiohttp session, POSTs the encoded
    `<methodCall>` and decodes the response body while it is still
    streaming in. Connections are not pooled or reused.

    Errors surface in two families:
    - TransportError (NotFound for a 404) when the connection fails, times
      out, or the server answers with a non-2xx status; the request,
      response and body are attached for diagnostics;
    - codec errors (FaultResponse, MalformedValue, StructuralError,
      ProtocolTypeError) when a 2xx body does not decode to a result.

    With `config.cookies` enabled, cookies set by the server are kept in a
    CookieJar and sent back on later calls. aiohttp's own cookie handling
    is switched off.
    """
    USER_AGENT = "xmlwire"

    def __init__(
        self,
        config: ClientConfig,
        serializer: Serializer,
        deserializer_factory: DeserializerFactory,
        cookies: CookieJar | None = None,
    ) -> None:
        self._config = config
        self._serializer = serializer
        self._deserializer_factory = deserializer_factory
        if cookies is None and config.cookies:
            cookies = CookieJar()
        self.cookies = cookies
        self._logger = logging.getLogger("core.transport.client")

    @property
    def url(self) -> str:
        return f"http://{self._config.host}:{self._config.port}{self._config.path}"

    async def method_call(self, method: str, params: Sequence[Any] = ()) -> Any:
        """
        Call `method` with `params` and return the decoded result.

        A fault answered by the server is raised as FaultResponse.
        """
        config = self._config
        xml = self._serializer.encode_call(method, params, config.encoding)
        request = HttpRequest(
            method="POST",
            url=self.url,
            headers=self._request_headers(),
            body=xml.encode(config.encoding),
        )

        try:
            return await self._send(request)
        except asyncio.TimeoutError as ex:
            raise TransportError(
                f"Call to '{method}' timed out after {config.timeout:.1f}s",
                request=request,
            ) from ex

    async def _send(self, request: HttpRequest) -> Any:
        address = f"{self._config.host}:{self._config.port}"
        timeout = aiohttp.ClientTimeout(total=self._config.timeout)

        async with aiohttp.ClientSession(
            timeout=timeout,
            cookie_jar=aiohttp.DummyCookieJar(),
            connector=aiohttp.TCPConnector(force_close=True),
        ) as session:
            try:
                async with session.post(request.url, data=request.body, headers=request.headers) as response:
                    if self.cookies is not None:
                        self.cookies.parse_response(response.headers)

                    if not response.ok:
                        body = await response.read()
                        error = NotFound if response.status == 404 else TransportError
                        raise error(
                            f"{address} answered {response.status} {response.reason or ''}".rstrip(),
                            request=request,
                            response=response,
                            body=body,
                        )

                    deserializer = self._deserializer_factory()
                    return await deserializer.decode_response_stream(
                        response.content.iter_chunked(READ_CHUNK_SIZE)
                    )
            except asyncio.TimeoutError:
                # some aiohttp timeouts are also ClientErrors
                raise
            except aiohttp.ClientConnectorError as ex:
                raise TransportError(f"Unable to connect to {address}: {ex.os_error}", request=request) from ex
            except aiohttp.ClientError as ex:
                raise TransportError(f"HTTP exchange with {address} failed: {ex}", request=request) from ex

    def _request_headers(self) -> CIMultiDict[str]:
        config = self._config
        headers = CIMultiDict([
            ("User-Agent", self.USER_AGENT),
            ("Content-Type", "text/xml"),
            ("Accept", "text/xml"),
            ("Accept-Charset", config.encoding.upper()),
            ("Connection", "close"),
        ])

        for name, value in config.headers.items():
            headers[name] = value

        if self.cookies is not None:
            self.cookies.compose_request(headers)

        return headers
