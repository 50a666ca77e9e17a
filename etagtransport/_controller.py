from __future__ import annotations

import logging
import typing as tp

import httpx

from ._hashing import VARY_HEADERS, etag_hash, hash_token
from ._headers import USER_AGENT_REPLACEMENTS, UserAgentReplacer, parse_vary
from ._utils import (
    FRAMING_HEADERS,
    HEADERS_ENCODING,
    canonical_header_name,
    extract_header_values,
    first_header_value,
)

logger = logging.getLogger("etagtransport.controller")

CACHEABLE_METHODS = ("GET", "HEAD")
EXCLUDED_PATHS = ("/rate_limit", "/api/v3/rate_limit")
STORABLE_STATUS_CODES = (200,)

__all__ = ("Controller", "CACHEABLE_METHODS", "EXCLUDED_PATHS", "STORABLE_STATUS_CODES")


class Controller:
    """
    Decides how a request is revalidated against a cached response.

    The controller holds no mutable state, every option is frozen at
    construction so one instance can be shared between transports and threads.

    :param cacheable_methods: Methods whose requests may use the cache, defaults to GET and HEAD
    :type cacheable_methods: tp.Iterable[str], optional
    :param excluded_paths: URL paths that must never be cached, defaults to the rate limit endpoints
    :type excluded_paths: tp.Iterable[str], optional
    :param vary_headers: Request headers the upstream folds into its ETags
    :type vary_headers: tp.Iterable[str], optional
    :param user_agent_replacements: (trigger, replacement) pairs applied to the User-Agent
    :type user_agent_replacements: tp.Iterable[tp.Tuple[str, str]], optional
    :param storable_status_codes: Status codes whose responses are written to the storage, defaults to 200
    :type storable_status_codes: tp.Iterable[int], optional
    :param credential_header: Header whose value is only ever stored as a fingerprint
    :type credential_header: str, optional
    :param vary_prefix: Prefix of the synthetic headers recording the request's varied values
    :type vary_prefix: str, optional
    :param request_id_header: Header carrying the upstream request identifier
    :type request_id_header: str, optional
    :param cached_request_id_header: Header exposing the identifier of the cached response on a hit
    :type cached_request_id_header: str, optional
    """

    def __init__(
        self,
        cacheable_methods: tp.Iterable[str] = CACHEABLE_METHODS,
        excluded_paths: tp.Iterable[str] = EXCLUDED_PATHS,
        vary_headers: tp.Iterable[str] = VARY_HEADERS,
        user_agent_replacements: tp.Iterable[tp.Tuple[str, str]] = USER_AGENT_REPLACEMENTS,
        storable_status_codes: tp.Iterable[int] = STORABLE_STATUS_CODES,
        credential_header: str = "Authorization",
        vary_prefix: str = "X-Varied-",
        request_id_header: str = "X-GitHub-Request-Id",
        cached_request_id_header: str = "X-Cached-Request-Id",
    ) -> None:
        self._cacheable_methods = tuple(method.upper() for method in cacheable_methods)
        self._excluded_paths = tuple(excluded_paths)
        self._vary_headers = tuple(sorted(vary_headers))
        self._user_agent_replacer = UserAgentReplacer(tuple(user_agent_replacements))
        self._storable_status_codes = tuple(storable_status_codes)
        self._credential_header = credential_header
        self._vary_prefix = vary_prefix
        self._request_id_header = request_id_header
        self._cached_request_id_header = cached_request_id_header

    @property
    def vary_prefix(self) -> str:
        return self._vary_prefix

    def is_cacheable(self, request: httpx.Request) -> bool:
        """
        Determines whether the request may be answered with the help of the cache.

        Only safe reads qualify: the method must be cacheable, no byte range
        may be requested and the path must not be excluded.
        """
        if request.method.upper() not in self._cacheable_methods:
            logger.debug(
                f"Considering the resource located at {request.url} as not cacheable "
                f"since the request method ({request.method}) is not in the list of cacheable methods."
            )
            return False

        if first_header_value(request.headers, "Range"):
            logger.debug(
                f"Considering the resource located at {request.url} as not cacheable "
                "since the request asks for a byte range."
            )
            return False

        if request.url.path in self._excluded_paths:
            logger.debug(
                f"Considering the resource located at {request.url} as not cacheable "
                "since its path is excluded from caching."
            )
            return False

        return True

    def normalize_user_agent(self, headers: httpx.Headers) -> None:
        user_agent = first_header_value(headers, "User-Agent")
        if user_agent:
            headers["User-Agent"] = self._user_agent_replacer.replace(user_agent)

    def is_credential(self, header_name: str) -> bool:
        return header_name.lower() == self._credential_header.lower()

    def identical_vary(self, request: httpx.Request, cached: httpx.Response) -> bool:
        """
        Checks whether the request presents the same varied values the cached response was stored with.

        The credential header is compared through its fingerprint since its
        cleartext is never stored.
        """
        for header_name in parse_vary(cached.headers):
            if header_name == "*":
                return False
            stored = first_header_value(cached.headers, self._vary_prefix + header_name)
            current = first_header_value(request.headers, header_name)
            if self.is_credential(header_name):
                current = hash_token(current)
            if current != stored:
                return False
        return True

    def add_conditional_headers(self, request: httpx.Request, cached: tp.Optional[httpx.Response]) -> None:
        """
        Sets `If-None-Match` on the request from the cached response, if there is one.

        When the varied values match, the cached ETag is reused as is.
        Otherwise the ETag the upstream would compute for the cached body
        under the current request headers is derived locally.

        The cached response must already be read into memory.
        """
        if cached is None:
            return

        if self.identical_vary(request, cached):
            etag = first_header_value(cached.headers, "ETag")
            if etag:
                logger.debug(f"Revalidating {request.url} with the stored ETag")
                request.headers["If-None-Match"] = etag
            return

        digest = etag_hash(request.headers, parse_vary(cached.headers), self._vary_headers)
        digest.update(cached.content)
        logger.debug(f"Revalidating {request.url} with a computed ETag")
        request.headers["If-None-Match"] = f'"{digest.hexdigest()}"'

    def prepare_request(self, request: httpx.Request, cached: tp.Optional[httpx.Response]) -> httpx.Request:
        """
        Builds the request actually sent upstream.

        The given request is left untouched, the User-Agent normalization and
        the conditional headers are applied to a copy.
        """
        prepared = httpx.Request(
            method=request.method,
            url=request.url,
            headers=request.headers.copy(),
            stream=request.stream,
            extensions=dict(request.extensions),
        )
        self.normalize_user_agent(prepared.headers)
        self.add_conditional_headers(prepared, cached)
        return prepared

    def is_storable(self, response: httpx.Response) -> bool:
        if response.status_code not in self._storable_status_codes:
            return False
        return bool(first_header_value(response.headers, "ETag"))

    def snapshot_headers(self, request: httpx.Request, response_headers: httpx.Headers) -> httpx.Headers:
        """
        Returns a copy of the response headers recording the request's varied values.

        Each name of the response's `Vary` header gets a synthetic
        `<prefix><Name>` header holding the request values. The credential
        header is stored as its fingerprint, even when the request has none.
        """
        raw = [
            (key, value)
            for key, value in response_headers.raw
            if not key.decode(HEADERS_ENCODING).lower().startswith(self._vary_prefix.lower())
        ]
        for header_name in parse_vary(response_headers):
            snapshot_name = (self._vary_prefix + canonical_header_name(header_name)).encode(HEADERS_ENCODING)
            values = extract_header_values(request.headers.raw, header_name)
            if self.is_credential(header_name):
                fingerprint = hash_token(values[0].decode(HEADERS_ENCODING) if values else "")
                values = [fingerprint.encode("ascii")]
            raw.extend((snapshot_name, value) for value in values)
        return httpx.Headers(raw)

    def strip_snapshot(self, headers: httpx.Headers) -> httpx.Headers:
        prefix = self._vary_prefix.lower().encode(HEADERS_ENCODING)
        return httpx.Headers([(key, value) for key, value in headers.raw if not key.lower().startswith(prefix)])

    def merge_not_modified_headers(
        self,
        response_headers: httpx.Headers,
        cached_headers: httpx.Headers,
    ) -> httpx.Headers:
        """
        Headers of the response served after a `304 Not Modified`.

        The headers of the 304 win; cached headers the 304 did not carry are
        added, except the synthetic variance snapshot. The cached request
        identifier is exposed under its own header so a cache hit can be told
        apart from a fresh response.
        """
        prefix = self._vary_prefix.lower().encode(HEADERS_ENCODING)
        request_id = self._request_id_header.lower().encode(HEADERS_ENCODING)
        cached_request_id = self._cached_request_id_header.encode(HEADERS_ENCODING)

        merged = [(key, value) for key, value in response_headers.raw if key.lower() not in FRAMING_HEADERS]
        present = {key.lower() for key, _ in merged}
        cached_ids = []

        for key, value in cached_headers.raw:
            lower_key = key.lower()
            if lower_key.startswith(prefix):
                continue
            if lower_key == request_id:
                cached_ids.append(value)
            if lower_key not in present:
                merged.append((key, value))

        if cached_ids:
            merged = [(key, value) for key, value in merged if key.lower() != cached_request_id.lower()]
            merged.extend((cached_request_id, value) for value in cached_ids)

        return httpx.Headers(merged)
