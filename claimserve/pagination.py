"""Split a channel's claim list into pages of CLAIMS_PER_PAGE."""
from __future__ import annotations

import math
from typing import List, Mapping, Optional, Sequence, TypeVar

from claimserve.logger import get_logger
from claimserve.models import ChannelContents, ChannelPage

logger = get_logger(__name__)

CLAIMS_PER_PAGE = 10
PAGE_PARAM = "p"

T = TypeVar("T")


def get_page(query: Mapping[str, str]) -> int:
    """1-based page number from the query string; 1 when missing or bad."""
    raw = query.get(PAGE_PARAM)
    if not raw:
        return 1
    try:
        page = int(raw)
    except (TypeError, ValueError):
        logger.debug("Ignoring unparsable page number %r", raw)
        return 1
    return max(page, 1)


def extract_page_from_claims(claims: Optional[Sequence[T]], page_number: int) -> List[T]:
    if not claims:
        return []
    start = (page_number - 1) * CLAIMS_PER_PAGE
    if start < 0:
        return []
    return list(claims[start:start + CLAIMS_PER_PAGE])


def determine_total_pages(claims: Optional[Sequence[object]]) -> int:
    if not claims:
        return 0
    if len(claims) < CLAIMS_PER_PAGE:
        return 1
    return math.ceil(len(claims) / CLAIMS_PER_PAGE)


def determine_previous_page(current_page: int) -> Optional[int]:
    if current_page == 1:
        return None
    return current_page - 1


def determine_next_page(total_pages: int, current_page: int) -> Optional[int]:
    # Pages past the end (and empty channels) have no next page.
    if current_page >= total_pages:
        return None
    return current_page + 1


def determine_total_claims(claims: Optional[Sequence[object]]) -> int:
    return len(claims) if claims else 0


def build_channel_page(contents: ChannelContents, query: Mapping[str, str]) -> ChannelPage:
    """Assemble the pagination window for one channel listing request."""
    total_pages = determine_total_pages(contents.claims)
    current_page = get_page(query)
    return ChannelPage(
        channel_name=contents.channel_name,
        long_channel_id=contents.long_channel_id,
        short_channel_id=contents.short_channel_id,
        claims=extract_page_from_claims(contents.claims, current_page),
        previous_page=determine_previous_page(current_page),
        current_page=current_page,
        next_page=determine_next_page(total_pages, current_page),
        total_pages=total_pages,
        total_results=determine_total_claims(contents.claims),
    )
