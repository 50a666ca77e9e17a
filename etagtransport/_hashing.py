from __future__ import annotations

import base64
import binascii
import hashlib
import typing as tp

import httpx

from ._utils import extract_header_values

__all__ = ("VARY_HEADERS", "etag_hash", "hash_token")

# Request headers the upstream folds into its ETag, this tuple _must_ remain sorted.
VARY_HEADERS: tp.Tuple[str, ...] = (
    "Accept",
    "Authorization",
    "Cookie",
)


def etag_hash(
    request_headers: httpx.Headers,
    vary: tp.Optional[tp.Iterable[str]] = None,
    vary_headers: tp.Sequence[str] = VARY_HEADERS,
) -> "hashlib._Hash":
    """
    Start a SHA-256 digest the same way the GitHub API derives its ETags.

    Every value of each header in `vary_headers` is written in that fixed
    order, followed by a colon. When `vary` is given, only the headers it
    names take part. The response body must be written to the returned
    digest before it can be finalized.

    :param request_headers: Headers of the request being revalidated
    :type request_headers: httpx.Headers
    :param vary: Header names the response declared in `Vary`, defaults to None
    :type vary: tp.Optional[tp.Iterable[str]], optional
    :param vary_headers: Sorted header names that may affect the ETag
    :type vary_headers: tp.Sequence[str], optional
    :return: The digest, ready to receive the body
    """
    digest = hashlib.sha256()
    allowed = None if vary is None else {name.lower() for name in vary}
    for header_name in vary_headers:
        if allowed is not None and header_name.lower() not in allowed:
            continue
        for header_value in extract_header_values(request_headers.raw, header_name):
            digest.update(header_value + b":")
    return digest


def _extract_secret(authorization: str) -> bytes:
    token = b""

    # The most common pattern
    bearer = _cut_prefix(authorization, "Bearer ")
    if bearer:
        token = bearer.encode("utf-8")

    basic = _cut_prefix(authorization, "Basic ")
    if basic:
        try:
            decoded = base64.b64decode(basic, validate=True)
        except (binascii.Error, ValueError):
            decoded = b""
        _, sep, password = decoded.partition(b":")
        if sep and password:
            token = password

    # Legacy, still accepted by the API
    legacy = _cut_prefix(authorization, "token ")
    if legacy:
        token = legacy.encode("utf-8")

    return token


def _cut_prefix(value: str, prefix: str) -> str:
    if value.startswith(prefix):
        return value[len(prefix) :]
    return ""


def hash_token(authorization: tp.Optional[str]) -> str:
    """
    Fingerprint an `Authorization` header value.

    The output matches the `hashed_token` field GitHub records in its audit
    logs: base64 of the SHA-256 of the bare secret. `Bearer`, `Basic` and
    `token` schemes yield the same fingerprint for the same secret, and an
    absent or unrecognized value is fingerprinted as the empty secret.
    """
    digest = hashlib.sha256(_extract_secret(authorization or "")).digest()
    return base64.b64encode(digest).decode("ascii")
