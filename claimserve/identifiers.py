"""Classify and normalize claim / channel identifiers taken from request paths."""
from __future__ import annotations

import re
import string
from dataclasses import dataclass
from typing import Optional, Tuple

CHANNEL_CHAR = "@"
CLAIM_ID_CHAR = ":"
CLAIM_ID_LENGTH = 40

_CLAIM_ID_RE = re.compile(r"[A-Za-z0-9]{%d}" % CLAIM_ID_LENGTH)

ALPHANUMERIC = string.ascii_letters + string.digits


@dataclass(frozen=True)
class ShortIdRule:
    """Shape a short id must have to be accepted.

    The default (exactly one alphanumeric character) is the legacy swap's rule:
    anything longer is read as a claim name there. Resolution accepts every
    prefix the index can hand out, see INDEX_SHORT_ID_RULE.
    """
    min_length: int = 1
    max_length: int = 1
    alphabet: str = ALPHANUMERIC

    def matches(self, value: str) -> bool:
        if not self.min_length <= len(value) <= self.max_length:
            return False
        return all(char in self.alphabet for char in value)


DEFAULT_SHORT_ID_RULE = ShortIdRule()
INDEX_SHORT_ID_RULE = ShortIdRule(max_length=CLAIM_ID_LENGTH - 1)


@dataclass(frozen=True)
class ChannelReference:
    """A channel token split into its name and optional embedded id."""
    channel_name: str                 # always starts with "@"
    channel_id: Optional[str] = None  # only when the token had ":"

    @property
    def has_channel_id(self) -> bool:
        return self.channel_id is not None


def is_valid_claim_id(value: str) -> bool:
    return _CLAIM_ID_RE.fullmatch(value) is not None


def is_valid_short_id(value: str, rule: ShortIdRule = DEFAULT_SHORT_ID_RULE) -> bool:
    return rule.matches(value)


def is_valid_short_id_or_claim_id(
    value: str, rule: ShortIdRule = DEFAULT_SHORT_ID_RULE
) -> bool:
    return is_valid_claim_id(value) or is_valid_short_id(value, rule)


def is_channel(value: str) -> bool:
    return value[:1] == CHANNEL_CHAR


def split_channel_token(token: str) -> ChannelReference:
    """
    Split a channel token at the first id separator.

    Supported formats:
    - @channel
    - @channel:<long or short channel id>
    """
    name, separator, channel_id = token.partition(CLAIM_ID_CHAR)
    if not separator:
        return ChannelReference(channel_name=token)
    return ChannelReference(channel_name=name, channel_id=channel_id)


def apply_legacy_ordering_fix(
    identifier: str, name: str, rule: ShortIdRule = DEFAULT_SHORT_ID_RULE
) -> Tuple[str, str]:
    """Swap the segments of old-style /<name>/<claim_id> URLs.

    Only applies to the two-segment path, once per request. Returns the
    (identifier, name) pair with roles fixed.
    """
    if is_valid_short_id_or_claim_id(name, rule) and not is_valid_short_id_or_claim_id(
        identifier, rule
    ):
        return name, identifier
    return identifier, name
