"""Decide how a claim is delivered from its path token and the Accept header."""
from __future__ import annotations

from enum import Enum
from typing import Mapping, Optional

# Twitter's player preview inserts ">" before the file extension
_PREVIEW_PATCH_CHAR = ">"
_EXTENSION_CHAR = "."
_HTML_MEDIA_TYPE = "text/html"


class ResponseType(str, Enum):
    SERVE = "SERVE"        # raw asset bytes
    SHOW = "SHOW"          # full interactive page
    SHOWLITE = "SHOWLITE"  # minimal page for link-preview scrapers


def _accepts_html(accept: Optional[str]) -> bool:
    if not accept:
        return False
    media_ranges = (part.split(";", 1)[0].strip() for part in accept.split(","))
    return _HTML_MEDIA_TYPE in media_ranges


def determine_response_type(token: str, headers: Mapping[str, str]) -> ResponseType:
    """SHOW without an extension; SERVE with one, unless the client wants HTML."""
    if _EXTENSION_CHAR not in token:
        return ResponseType.SHOW
    if _accepts_html(headers.get("accept")):
        return ResponseType.SHOWLITE
    return ResponseType.SERVE


def extract_display_name(token: str) -> str:
    """Strip the file extension (and the preview ">" suffix) from a token."""
    name = token.split(_PREVIEW_PATCH_CHAR, 1)[0]
    return name.split(_EXTENSION_CHAR, 1)[0]
