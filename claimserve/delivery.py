"""Pick and run the delivery strategy for a resolved claim."""
from __future__ import annotations

import asyncio
from typing import Union
from urllib.parse import quote

from fastapi.responses import FileResponse, HTMLResponse, RedirectResponse

from claimserve.logger import get_logger
from claimserve.models import ChannelLookup, ClaimFound, NotFound
from claimserve.pagination import build_channel_page
from claimserve.renderer import PageRenderer
from claimserve.resolver import ClaimIndex
from claimserve.response_type import ResponseType

logger = get_logger(__name__)

DeliveryResponse = Union[HTMLResponse, FileResponse, RedirectResponse]


def get_claim_redirect_url(name: str, claim_id: str) -> str:
    return f"/api/get_claim/{quote(name, safe='')}/{quote(claim_id, safe='')}"


class Delivery:
    """SHOW / SHOWLITE render pages; SERVE streams the local file or redirects."""

    def __init__(self, index: ClaimIndex, renderer: PageRenderer):
        self.index = index
        self.renderer = renderer

    async def deliver(self, response_type: ResponseType, claim: ClaimFound) -> DeliveryResponse:
        if response_type == ResponseType.SHOW:
            return await self._show(claim, lite=False)
        if response_type == ResponseType.SHOWLITE:
            return await self._show(claim, lite=True)
        if response_type == ResponseType.SERVE:
            return await self._serve(claim)
        raise ValueError(f"Unknown response type: {response_type!r}")

    def not_found(self, outcome: NotFound) -> HTMLResponse:
        if outcome == NotFound.channel:
            return self.renderer.no_channel()
        return self.renderer.no_claim()

    async def _show(self, claim: ClaimFound, lite: bool) -> HTMLResponse:
        record, short_id = await asyncio.gather(
            self.index.get_claim_record(claim.claim_id, claim.name),
            self.index.get_short_claim_id(claim.claim_id, claim.name),
        )
        logger.debug("claim record: %s short id: %s", record, short_id)
        if record is None:
            return self.renderer.no_claim()
        if lite:
            return self.renderer.show_lite(record, short_id)
        return self.renderer.show(record, short_id)

    async def _serve(self, claim: ClaimFound) -> Union[FileResponse, RedirectResponse]:
        file_record = await self.index.get_local_file_record(claim.claim_id, claim.name)
        logger.debug("file record: %s", file_record)
        if isinstance(file_record, NotFound):
            return RedirectResponse(
                get_claim_redirect_url(claim.name, claim.claim_id), status_code=307
            )
        return FileResponse(file_record.file_path, media_type=file_record.file_type)

    def channel(self, contents: ChannelLookup, query) -> HTMLResponse:
        if isinstance(contents, NotFound):
            return self.renderer.no_channel()
        return self.renderer.channel(build_channel_page(contents, query))
