#!/usr/bin/env uv run
# /// script
# requires-python = ">=3.9"
# dependencies = [
#     "etagtransport[requests, sqlite]",
# ]
#
# [tool.uv.sources]
# etagtransport = { path = "../", editable = true }
# ///

import sqlite3

import requests

from etagtransport import SQLiteStorage
from etagtransport.requests import CacheAdapter

session = requests.Session()

adapter = CacheAdapter(storage=SQLiteStorage(connection=sqlite3.connect(":memory:")))

session.mount("https://api.github.com/", adapter)


def fetch_and_print(url: str):
    print(f"\n➡ Sending request to {url}...")
    response = session.get(url)

    print(f"🔄 From Cache: {getattr(response, 'from_cache', False)}")
    print(f"📍 Revalidated: {getattr(response, 'revalidated', False)}")
    print(f"🪪 Cached Request Id: {response.headers.get('x-cached-request-id')}")
    print(f"⏳ Rate Limit Remaining: {response.headers.get('x-ratelimit-remaining')}")


if __name__ == "__main__":
    url = "https://api.github.com/users/octocat"
    fetch_and_print(url)
    fetch_and_print(url)
