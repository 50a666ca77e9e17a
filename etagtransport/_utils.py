from __future__ import annotations

import hashlib
import typing as tp
from pathlib import Path

import httpx

HEADERS_ENCODING = "iso-8859-1"

# Headers describing the wire framing of a body rather than the body itself.
FRAMING_HEADERS = (b"content-encoding", b"content-length", b"transfer-encoding")


def extract_header_values(
    headers: tp.Iterable[tp.Tuple[bytes, bytes]],
    header_key: tp.Union[bytes, str],
) -> tp.List[bytes]:
    if isinstance(header_key, str):
        header_key = header_key.encode(HEADERS_ENCODING)
    extracted_headers = []
    for key, value in headers:
        if key.lower() == header_key.lower():
            extracted_headers.append(value)
    return extracted_headers


def first_header_value(headers: httpx.Headers, header_key: str) -> str:
    """
    Return the first value of a header, or an empty string when it is absent.

    Unlike `httpx.Headers.get`, multiple values are never joined together.
    """
    values = extract_header_values(headers.raw, header_key)
    if not values:
        return ""
    return values[0].decode(HEADERS_ENCODING)


def canonical_header_name(name: str) -> str:
    """
    Convert a header name to its canonical MIME form.

    Examples:
        >>> canonical_header_name("authorization")
        'Authorization'
        >>> canonical_header_name("x-github-otp")
        'X-Github-Otp'
    """
    return "-".join(part.capitalize() for part in name.split("-"))


def buffered_headers(headers: httpx.Headers, content: bytes) -> httpx.Headers:
    """
    Headers describing a body that was read (and decoded) into memory.

    `Transfer-Encoding` is always dropped. When the body was content-encoded,
    `Content-Encoding` is dropped too and `Content-Length` is rewritten to the
    size of the decoded body.
    """
    encoded = bool(extract_header_values(headers.raw, b"content-encoding"))
    skipped = FRAMING_HEADERS if encoded else (b"transfer-encoding",)
    raw = [(key, value) for key, value in headers.raw if key.lower() not in skipped]
    if encoded:
        raw.append((b"Content-Length", str(len(content)).encode(HEADERS_ENCODING)))
    return httpx.Headers(raw)


def cache_key(url: tp.Union[httpx.URL, str]) -> str:
    return str(url)


def hashed_key(key: str) -> str:
    return hashlib.sha256(key.encode("utf-8")).hexdigest()


def strip_scheme(key: str) -> str:
    _, sep, rest = key.partition("://")
    return rest if sep else key


def float_seconds_to_int_milliseconds(seconds: float) -> int:
    return int(seconds * 1000)


def ensure_cache_dir(base_path: tp.Optional[Path] = None) -> Path:
    _base_path = Path(base_path) if base_path is not None else Path(".cache/etagtransport")
    _gitignore_file = _base_path / ".gitignore"

    _base_path.mkdir(parents=True, exist_ok=True)

    if not _gitignore_file.is_file():
        with open(_gitignore_file, "w", encoding="utf-8") as f:
            f.write("# Automatically created by etagtransport\n*")
    return _base_path
