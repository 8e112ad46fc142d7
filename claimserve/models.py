"""Pydantic models for claim resolution and delivery."""
from __future__ import annotations

from enum import Enum
from typing import List, Optional, Union

from pydantic import BaseModel, Field


# --- Lookup outcomes ---

class NotFound(str, Enum):
    """Expected "not found" outcomes; rendered as views, never as 5xx."""
    channel = "NO_CHANNEL"
    claim = "NO_CLAIM"
    file = "NO_FILE"


class ClaimFound(BaseModel):
    claim_id: str = Field(..., description="Long (40 character) claim id")
    name: str


# --- Claim index records ---

class ClaimRecord(BaseModel):
    claim_id: str
    name: str
    title: str = ""
    description: str = ""
    thumbnail: Optional[str] = None
    content_type: Optional[str] = None
    nsfw: bool = False
    channel_name: Optional[str] = None
    certificate_id: Optional[str] = None  # long id of the signing channel
    height: int = 0
    effective_amount: float = 0.0

    @property
    def file_extension(self) -> str:
        """Extension guessed from the content type ("mp4" for "video/mp4")."""
        if not self.content_type or "/" not in self.content_type:
            return ""
        return self.content_type.split("/", 1)[1]


class FileRecord(BaseModel):
    claim_id: str
    name: str
    file_path: str
    file_type: Optional[str] = None


class ChannelContents(BaseModel):
    channel_name: str
    long_channel_id: str
    short_channel_id: str
    claims: List[ClaimRecord] = []


# --- View models ---

class ChannelPage(BaseModel):
    channel_name: str
    long_channel_id: str
    short_channel_id: str
    claims: List[ClaimRecord] = []
    previous_page: Optional[int] = None
    current_page: int = Field(1, ge=1)
    next_page: Optional[int] = None
    total_pages: int = Field(0, ge=0)
    total_results: int = Field(0, ge=0)


class ErrorResponse(BaseModel):
    success: bool = False
    message: str


ClaimLookup = Union[ClaimFound, NotFound]
ChannelLookup = Union[ChannelContents, NotFound]
FileLookup = Union[FileRecord, NotFound]
