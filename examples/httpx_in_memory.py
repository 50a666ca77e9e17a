#!/usr/bin/env uv run
# /// script
# requires-python = ">=3.9"
# dependencies = [
#     "etagtransport",
# ]
#
# [tool.uv.sources]
# etagtransport = { path = "../", editable = true }
# ///

import httpx

from etagtransport import ConditionalTransport, InMemoryStorage

transport = ConditionalTransport(transport=httpx.HTTPTransport(), storage=InMemoryStorage(capacity=100))

with httpx.Client(transport=transport, base_url="https://api.github.com") as client:
    for _ in range(2):
        # curl in the User-Agent is rewritten so the API keeps returning compact JSON.
        response = client.get("/users/octocat", headers={"User-Agent": "curl/8.1.2"})
        print(response.status_code, response.extensions.get("from_cache"), response.headers.get("x-cached-request-id"))
