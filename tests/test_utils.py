import gzip
from pathlib import Path

import httpx
import pytest

from etagtransport._utils import (
    buffered_headers,
    canonical_header_name,
    ensure_cache_dir,
    extract_header_values,
    first_header_value,
    float_seconds_to_int_milliseconds,
    strip_scheme,
)


def test_extract_header_values():
    headers = [(b"Vary", b"Accept"), (b"vary", b"Cookie"), (b"ETag", b'"deadbeef"')]

    assert extract_header_values(headers, "VARY") == [b"Accept", b"Cookie"]
    assert extract_header_values(headers, b"x-missing") == []


def test_first_header_value_never_joins():
    headers = httpx.Headers([("Accept", "application/json"), ("Accept", "text/plain")])

    assert first_header_value(headers, "accept") == "application/json"
    assert first_header_value(headers, "Authorization") == ""


@pytest.mark.parametrize(
    "name, expected",
    [
        ("authorization", "Authorization"),
        ("x-github-otp", "X-Github-Otp"),
        ("ACCEPT", "Accept"),
    ],
)
def test_canonical_header_name(name, expected):
    assert canonical_header_name(name) == expected


def test_buffered_headers_for_encoded_body():
    body = b'{"login":"x"}'
    headers = httpx.Headers(
        [
            ("Content-Type", "application/json"),
            ("Content-Encoding", "gzip"),
            ("Content-Length", str(len(gzip.compress(body)))),
            ("ETag", '"deadbeef"'),
        ]
    )

    assert buffered_headers(headers, body).raw == [
        (b"Content-Type", b"application/json"),
        (b"ETag", b'"deadbeef"'),
        (b"Content-Length", str(len(body)).encode()),
    ]


def test_buffered_headers_for_plain_body():
    headers = httpx.Headers([("Content-Length", "5"), ("Transfer-Encoding", "chunked"), ("ETag", '"deadbeef"')])

    assert buffered_headers(headers, b"hello").raw == [(b"Content-Length", b"5"), (b"ETag", b'"deadbeef"')]


@pytest.mark.parametrize(
    "key, expected",
    [
        ("https://api.github.com/users/x", "api.github.com/users/x"),
        ("http://localhost:8080/api/v3/users/x?page=2", "localhost:8080/api/v3/users/x?page=2"),
        ("api.github.com/users/x", "api.github.com/users/x"),
    ],
)
def test_strip_scheme(key, expected):
    assert strip_scheme(key) == expected


def test_float_seconds_to_int_milliseconds():
    assert float_seconds_to_int_milliseconds(1.5) == 1500
    assert float_seconds_to_int_milliseconds(60) == 60000


def test_ensure_cache_dir(use_temp_dir):
    path = ensure_cache_dir()

    assert path == Path(".cache/etagtransport")
    assert (path / ".gitignore").read_text(encoding="utf-8") == "# Automatically created by etagtransport\n*"
