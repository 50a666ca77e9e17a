from __future__ import annotations

import re
import typing as tp

import httpx

from ._utils import HEADERS_ENCODING, extract_header_values

__all__ = (
    "USER_AGENT_REPLACEMENTS",
    "UserAgentReplacer",
    "parse_vary",
)

# The GitHub API pretty-prints its responses when the User-Agent contains any of these,
# which changes the body bytes and therefore breaks the ETag calculation.
USER_AGENT_REPLACEMENTS: tp.Tuple[tp.Tuple[str, str], ...] = (
    ("curl", "cUrL"),
    ("Wget", "wGeT"),
    ("Safari", "sAfArI"),
    ("Firefox", "fIrEfOx"),
)

_FIELD_SEPARATORS = re.compile(r"[,\s]+")


def parse_vary(headers: httpx.Headers) -> tp.List[str]:
    """
    Collect the field names listed in every `Vary` header.

    Values are split on commas and whitespace. The first spelling of each
    name is kept and later duplicates (compared case-insensitively) are
    dropped.
    """
    fields: tp.List[str] = []
    seen: tp.Set[str] = set()
    for vary_value in extract_header_values(headers.raw, b"vary"):
        for field_name in _FIELD_SEPARATORS.split(vary_value.decode(HEADERS_ENCODING)):
            if not field_name or field_name.lower() in seen:
                continue
            seen.add(field_name.lower())
            fields.append(field_name)
    return fields


class UserAgentReplacer:
    """
    Substitutes every trigger substring of a User-Agent in a single pass.

    :param replacements: Pairs of (trigger, replacement), earlier pairs win
        when two triggers start at the same position
    :type replacements: tp.Iterable[tp.Tuple[str, str]]
    """

    def __init__(self, replacements: tp.Iterable[tp.Tuple[str, str]] = USER_AGENT_REPLACEMENTS) -> None:
        self._replacements = dict(replacements)
        if self._replacements:
            self._pattern: tp.Optional[tp.Pattern[str]] = re.compile(
                "|".join(re.escape(trigger) for trigger in self._replacements)
            )
        else:
            self._pattern = None

    def replace(self, value: str) -> str:
        if self._pattern is None:
            return value
        return self._pattern.sub(lambda match: self._replacements[match.group(0)], value)
