from __future__ import annotations

from io import RawIOBase
from typing import Any, Dict, Iterator, Mapping, Optional

import httpx

from etagtransport._controller import Controller
from etagtransport._sync._storages import BaseStorage
from etagtransport._sync._transports import ConditionalTransport
from etagtransport._utils import HEADERS_ENCODING

try:
    import requests
    from requests.adapters import HTTPAdapter
    from urllib3 import HTTPResponse
except ImportError:  # pragma: no cover
    raise ImportError(
        "The 'requests' library is required to use the requests integration. "
        "Install etagtransport with 'pip install etagtransport[requests]'."
    )

__all__ = ("CacheAdapter",)

# 128 KB
CHUNK_SIZE = 131072

# Headers the transport may rewrite before the request goes upstream.
REWRITTEN_HEADERS = ("User-Agent", "If-None-Match")

_PREPARED_REQUEST = "requests_prepared_request"
_SEND_KWARGS = "requests_send_kwargs"


class _IteratorStream(RawIOBase):
    def __init__(self, iterator: Iterator[bytes]):
        self.iterator = iterator
        self.leftover = b""

    def readable(self) -> bool:
        return True

    def readinto(self, b: bytearray) -> Optional[int]:  # type: ignore
        chunk = self.read(len(b))
        if not chunk:
            return 0
        n = len(chunk)
        b[:n] = chunk
        return n

    def read(self, size: int = -1) -> bytes:
        if size is None or size < 0:
            result = self.leftover + b"".join(self.iterator)
            self.leftover = b""
            return result

        while len(self.leftover) < size:
            try:
                self.leftover += next(self.iterator)
            except StopIteration:
                break

        result = self.leftover[:size]
        self.leftover = self.leftover[size:]
        return result


class _RawResponseStream(httpx.SyncByteStream):
    """
    Exposes the undecoded body of a streamed `requests` response to httpx.
    """

    def __init__(self, response: requests.models.Response) -> None:
        self._response = response

    def __iter__(self) -> Iterator[bytes]:
        yield from self._response.raw.stream(CHUNK_SIZE, decode_content=False)

    def close(self) -> None:
        self._response.close()


def _requests_to_httpx_request(
    request: requests.models.PreparedRequest,
    send_kwargs: Dict[str, Any],
) -> httpx.Request:
    body: bytes
    if isinstance(request.body, str):
        body = request.body.encode("utf-8")
    elif isinstance(request.body, bytes):
        body = request.body
    else:
        # Streamed bodies are sent by `requests` itself, never read here.
        body = b""
    assert request.method
    assert request.url
    return httpx.Request(
        method=request.method,
        url=request.url,
        headers=list(request.headers.items()),
        stream=httpx.ByteStream(body),
        extensions={_PREPARED_REQUEST: request, _SEND_KWARGS: send_kwargs},
    )


def _requests_to_httpx_response(response: requests.models.Response, request: httpx.Request) -> httpx.Response:
    extensions = {}
    if response.reason:
        extensions["reason_phrase"] = response.reason.encode("ascii", errors="replace")
    return httpx.Response(
        status_code=response.status_code,
        headers=list(response.headers.items()),
        stream=_RawResponseStream(response),
        extensions=extensions,
        request=request,
    )


class _UpstreamTransport(httpx.BaseTransport):
    """
    Sends the revalidated request through the adapter's connection pool.
    """

    def __init__(self, adapter: CacheAdapter) -> None:
        self._adapter = adapter

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        original: requests.models.PreparedRequest = request.extensions[_PREPARED_REQUEST]
        upstream = original.copy()
        for header_name in REWRITTEN_HEADERS:
            if header_name in request.headers:
                upstream.headers[header_name] = request.headers[header_name]

        response = self._adapter._send_upstream(upstream, **request.extensions[_SEND_KWARGS])
        return _requests_to_httpx_response(response, request)


class CacheAdapter(HTTPAdapter):
    """
    A `requests` adapter that revalidates cached responses with conditional requests.

    Mount it on a session for the API's base URL:

        session.mount("https://api.github.com/", CacheAdapter())

    :param storage: Storage that handles how the responses should be saved, defaults to None
    :type storage: tp.Optional[BaseStorage], optional
    :param controller: Controller holding the caching rules, defaults to None
    :type controller: tp.Optional[Controller], optional
    """

    def __init__(
        self,
        pool_connections: int = 10,
        pool_maxsize: int = 10,
        max_retries: int = 0,
        pool_block: bool = False,
        storage: BaseStorage | None = None,
        controller: Controller | None = None,
    ):
        super().__init__(pool_connections, pool_maxsize, max_retries, pool_block)
        self._transport = ConditionalTransport(
            transport=_UpstreamTransport(self),
            storage=storage,
            controller=controller,
        )

    def send(
        self,
        request: requests.models.PreparedRequest,
        stream: bool = False,
        timeout: None | float | tuple[float, float] | tuple[float, None] = None,
        verify: bool | str = True,
        cert: None | bytes | str | tuple[bytes | str, bytes | str] = None,
        proxies: Mapping[str, str] | None = None,
    ) -> requests.models.Response:
        send_kwargs = {"timeout": timeout, "verify": verify, "cert": cert, "proxies": proxies}
        response = self._transport.handle_request(_requests_to_httpx_request(request, send_kwargs))
        return self._httpx_to_requests(response, request)

    def _send_upstream(self, request: requests.models.PreparedRequest, **kwargs: Any) -> requests.models.Response:
        return super().send(request, stream=True, **kwargs)

    def _httpx_to_requests(
        self,
        response: httpx.Response,
        request: requests.models.PreparedRequest,
    ) -> requests.models.Response:
        reason = response.extensions.get("reason_phrase")
        urllib_response = HTTPResponse(
            body=_IteratorStream(response.iter_raw(CHUNK_SIZE)),
            headers=[
                (key.decode(HEADERS_ENCODING), value.decode(HEADERS_ENCODING)) for key, value in response.headers.raw
            ],
            status=response.status_code,
            reason=reason.decode("ascii") if reason else response.reason_phrase,
            preload_content=False,
            decode_content=False,
            request_method=request.method,
        )
        built = self.build_response(request, urllib_response)
        for key in ("from_cache", "revalidated", "cache_write_error"):
            if key in response.extensions:
                setattr(built, key, response.extensions[key])
        return built

    def close(self) -> Any:
        self._transport.close()
        super().close()
