"""Resolve channel / claim identifiers to a canonical long claim id."""
from __future__ import annotations

from typing import List, Optional, Protocol

from claimserve.identifiers import (
    INDEX_SHORT_ID_RULE,
    ShortIdRule,
    is_valid_claim_id,
    is_valid_short_id,
)
from claimserve.logger import get_logger
from claimserve.models import (
    ChannelContents,
    ChannelLookup,
    ClaimFound,
    ClaimLookup,
    ClaimRecord,
    FileLookup,
    FileRecord,
    NotFound,
)

logger = get_logger(__name__)


class ClaimIndex(Protocol):
    """Lookups the resolver and delivery layers need from the claim store."""

    async def get_long_channel_id(
        self, channel_name: str, channel_id: Optional[str]
    ) -> Optional[str]: ...

    async def get_short_channel_id(self, long_channel_id: str, channel_name: str) -> str: ...

    async def get_channel_claims(self, long_channel_id: str) -> List[ClaimRecord]: ...

    async def get_claim_id_in_channel(
        self, long_channel_id: str, claim_name: str
    ) -> Optional[str]: ...

    async def get_long_claim_id(self, name: str, short_id: str) -> Optional[str]: ...

    async def get_winning_claim_id(self, name: str) -> Optional[str]: ...

    async def get_claim_record(self, claim_id: str, name: str) -> Optional[ClaimRecord]: ...

    async def get_short_claim_id(self, long_id: str, name: str) -> str: ...

    async def get_local_file_record(self, claim_id: str, name: str) -> FileLookup: ...

    async def save_claims(self, claims: List[ClaimRecord]) -> None: ...

    async def save_file(self, record: FileRecord) -> None: ...


class Resolver:
    """
    Turns the parsed pieces of a request into a ClaimLookup.

    Errors raised by the index propagate unchanged; the route layer turns
    them into error responses.
    """

    def __init__(self, index: ClaimIndex, short_id_rule: ShortIdRule = INDEX_SHORT_ID_RULE):
        self.index = index
        self.short_id_rule = short_id_rule

    async def get_claim_id(
        self,
        channel_name: Optional[str],
        channel_id: Optional[str],
        claim_name: str,
        claim_id: Optional[str],
    ) -> ClaimLookup:
        if channel_name:
            return await self._get_claim_id_by_channel(channel_name, channel_id, claim_name)
        return await self._get_claim_id_by_claim(claim_name, claim_id)

    async def _get_claim_id_by_channel(
        self, channel_name: str, channel_id: Optional[str], claim_name: str
    ) -> ClaimLookup:
        long_channel_id = await self.index.get_long_channel_id(channel_name, channel_id)
        if long_channel_id is None:
            logger.debug("No channel found for %s:%s", channel_name, channel_id)
            return NotFound.channel
        claim_id = await self.index.get_claim_id_in_channel(long_channel_id, claim_name)
        if claim_id is None:
            return NotFound.claim
        return ClaimFound(claim_id=claim_id, name=claim_name)

    async def _get_claim_id_by_claim(
        self, claim_name: str, claim_id: Optional[str]
    ) -> ClaimLookup:
        if claim_id is None:
            long_id = await self.index.get_winning_claim_id(claim_name)
        elif is_valid_claim_id(claim_id):
            return ClaimFound(claim_id=claim_id, name=claim_name)
        elif is_valid_short_id(claim_id, self.short_id_rule):
            long_id = await self.index.get_long_claim_id(claim_name, claim_id)
        else:
            logger.debug("%r is neither a claim id nor a short id", claim_id)
            return NotFound.claim

        if long_id is None:
            return NotFound.claim
        return ClaimFound(claim_id=long_id, name=claim_name)

    async def get_channel_contents(
        self, channel_name: str, channel_id: Optional[str]
    ) -> ChannelLookup:
        long_channel_id = await self.index.get_long_channel_id(channel_name, channel_id)
        if long_channel_id is None:
            return NotFound.channel
        short_channel_id = await self.index.get_short_channel_id(long_channel_id, channel_name)
        claims = await self.index.get_channel_claims(long_channel_id)
        return ChannelContents(
            channel_name=channel_name,
            long_channel_id=long_channel_id,
            short_channel_id=short_channel_id,
            claims=claims,
        )
