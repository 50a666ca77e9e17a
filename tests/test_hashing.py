import httpx
import pytest

from etagtransport import VARY_HEADERS, etag_hash, hash_token

USER_BODY = (
    b'{"login":"bored-engineer","id":541842,"node_id":"MDQ6VXNlcjU0MTg0Mg==","avatar_url":"https://avatars'
    b'.githubusercontent.com/u/541842?v=4","gravatar_id":"","url":"https://api.github.com/users/bored-engi'
    b'neer","html_url":"https://github.com/bored-engineer","followers_url":"https://api.github.com/users/b'
    b'ored-engineer/followers","following_url":"https://api.github.com/users/bored-engineer/following{/oth'
    b'er_user}","gists_url":"https://api.github.com/users/bored-engineer/gists{/gist_id}","starred_url":"h'
    b'ttps://api.github.com/users/bored-engineer/starred{/owner}{/repo}","subscriptions_url":"https://api.'
    b'github.com/users/bored-engineer/subscriptions","organizations_url":"https://api.github.com/users/bor'
    b'ed-engineer/orgs","repos_url":"https://api.github.com/users/bored-engineer/repos","events_url":"http'
    b's://api.github.com/users/bored-engineer/events{/privacy}","received_events_url":"https://api.github.'
    b'com/users/bored-engineer/received_events","type":"User","user_view_type":"public","site_admin":false'
    b',"name":"Luke Young","company":null,"blog":"https://bored.engineer/","location":"San Francisco, CA",'
    b'"email":null,"hireable":true,"bio":"I find bugs and exploit them. Sometimes for money, mainly for fr'
    b'ee T-Shirts...","twitter_username":null,"public_repos":136,"public_gists":51,"followers":212,"follow'
    b'ing":13,"created_at":"2010-12-30T17:15:38Z","updated_at":"2025-05-06T02:44:16Z"}'
)

EMPTY_SHA256 = "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"
HUNTER2 = "9S+9MrKzuG/4jvbEkGKChfSCrxXdyylUH5S89Saj9sc="


@pytest.mark.parametrize(
    "headers, body, vary, expected",
    [
        ({}, b"", None, EMPTY_SHA256),
        ({}, USER_BODY, None, "c5542e3ee32c0adf1128a79d80a296d03412415c924e522d9d1c75b17d7c3ef0"),
        (
            {"Accept": "application/vnd.github.v3+json"},
            USER_BODY,
            None,
            "125f46f7d22cd8f41ea1534256ba85a45f4a0e3dcf995da9fecfe3361b93407d",
        ),
        (
            {"Accept": "application/vnd.github.v3+json", "Authorization": "Bearer hunter2"},
            USER_BODY,
            ["Accept"],
            "125f46f7d22cd8f41ea1534256ba85a45f4a0e3dcf995da9fecfe3361b93407d",
        ),
        (
            {"Accept": "application/vnd.github.v3+json", "Authorization": "Bearer hunter2"},
            USER_BODY,
            ["Accept", "Authorization"],
            "2c3b29a72c9c09135a89fe51c46613393b445efabdf6f02105dc1561237093a4",
        ),
    ],
    ids=["empty_all", "empty_headers", "accept", "vary_none", "vary_authorization"],
)
def test_etag_hash(headers, body, vary, expected):
    digest = etag_hash(httpx.Headers(headers), vary)
    digest.update(body)

    assert digest.hexdigest() == expected


def test_etag_hash_ignores_headers_that_do_not_vary():
    digest = etag_hash(httpx.Headers({"X-GitHub-Api-Version": "2022-11-28", "User-Agent": "curl/8.1.2"}))

    assert digest.hexdigest() == EMPTY_SHA256


def test_etag_hash_vary_names_are_case_insensitive():
    headers = httpx.Headers({"Accept": "application/json", "Authorization": "Bearer hunter2"})

    assert etag_hash(headers, ["accept"]).hexdigest() == etag_hash(headers, ["Accept"]).hexdigest()


def test_etag_hash_empty_vary_skips_every_header():
    headers = httpx.Headers({"Accept": "application/json", "Cookie": "session=1"})

    assert etag_hash(headers, []).hexdigest() == EMPTY_SHA256


def test_etag_hash_order_does_not_depend_on_the_request():
    forward = httpx.Headers([("Accept", "application/json"), ("Cookie", "a=1")])
    backward = httpx.Headers([("Cookie", "a=1"), ("Accept", "application/json")])

    assert etag_hash(forward).hexdigest() == etag_hash(backward).hexdigest()


def test_etag_hash_writes_every_value_of_a_header():
    single = httpx.Headers([("Accept", "application/json")])
    repeated = httpx.Headers([("Accept", "application/json"), ("Accept", "text/plain")])

    assert etag_hash(single).hexdigest() != etag_hash(repeated).hexdigest()


def test_vary_headers_are_sorted():
    assert list(VARY_HEADERS) == sorted(VARY_HEADERS)


@pytest.mark.parametrize(
    "authorization, expected",
    [
        ("", "47DEQpj8HBSa+/TImW+5JCeuQeRkm5NMpJWZG3hSuFU="),
        ("Bearer hunter2", HUNTER2),
        ("Basic Ym9yZWQtZW5naW5lZXI6aHVudGVyMg==", HUNTER2),
        ("token hunter2", HUNTER2),
    ],
    ids=["empty", "bearer", "basic", "token"],
)
def test_hash_token(authorization, expected):
    assert hash_token(authorization) == expected


def test_hash_token_without_a_header():
    assert hash_token(None) == hash_token("")


@pytest.mark.parametrize(
    "authorization",
    [
        "Digest hunter2",
        "Basic not base64!",
        "Basic Ym9yZWQtZW5naW5lZXI=",
        "bearer hunter2",
    ],
    ids=["unknown_scheme", "malformed_basic", "basic_without_password", "lowercase_scheme"],
)
def test_hash_token_unrecognized_values_hash_the_empty_secret(authorization):
    assert hash_token(authorization) == hash_token("")
