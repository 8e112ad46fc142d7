"""Minimal HTML views: show, showLite, channel, noChannel, noClaim."""
from __future__ import annotations

from html import escape
from typing import List

from fastapi.responses import HTMLResponse

from claimserve.models import ChannelPage, ClaimRecord


def _page(title: str, body: str, head: str = "") -> str:
    return (
        "<!DOCTYPE html>\n<html>\n<head>\n"
        '<meta charset="utf-8">\n'
        f"<title>{escape(title)}</title>\n{head}"
        "</head>\n<body>\n"
        f"{body}\n"
        "</body>\n</html>\n"
    )


class PageRenderer:
    """Renders the views the routes select."""

    def __init__(self, site_host: str = ""):
        self.site_host = site_host.rstrip("/")

    def _asset_url(self, claim: ClaimRecord, short_id: str) -> str:
        ext = claim.file_extension
        suffix = f".{ext}" if ext else ""
        return f"{self.site_host}/{short_id}/{claim.name}{suffix}"

    def _open_graph(self, claim: ClaimRecord, short_id: str) -> str:
        tags = [
            ("og:title", claim.title or claim.name),
            ("og:description", claim.description),
            ("og:url", f"{self.site_host}/{short_id}/{claim.name}"),
        ]
        if claim.thumbnail:
            tags.append(("og:image", claim.thumbnail))
        if claim.content_type and claim.content_type.startswith("video/"):
            tags.append(("og:video", self._asset_url(claim, short_id)))
        return "".join(
            f'<meta property="{prop}" content="{escape(value)}">\n' for prop, value in tags
        )

    def _media(self, claim: ClaimRecord, short_id: str) -> str:
        src = escape(self._asset_url(claim, short_id))
        content_type = claim.content_type or ""
        if content_type.startswith("video/"):
            return f'<video controls src="{src}"></video>'
        if content_type.startswith("image/"):
            return f'<img src="{src}" alt="{escape(claim.title or claim.name)}">'
        return f'<a href="{src}">{escape(claim.name)}</a>'

    def show(self, claim: ClaimRecord, short_id: str) -> HTMLResponse:
        body = (
            f"<h1>{escape(claim.title or claim.name)}</h1>\n"
            f"{self._media(claim, short_id)}\n"
            f"<p>{escape(claim.description)}</p>\n"
            f"<p>Short link: {escape(self.site_host)}/{escape(short_id)}/{escape(claim.name)}</p>"
        )
        if claim.channel_name:
            body += f'\n<p>Published by <a href="/{escape(claim.channel_name)}">{escape(claim.channel_name)}</a></p>'
        return HTMLResponse(_page(claim.title or claim.name, body, self._open_graph(claim, short_id)))

    def show_lite(self, claim: ClaimRecord, short_id: str) -> HTMLResponse:
        return HTMLResponse(
            _page(claim.title or claim.name, self._media(claim, short_id), self._open_graph(claim, short_id))
        )

    def channel(self, page: ChannelPage) -> HTMLResponse:
        base = f"/{page.channel_name}:{page.long_channel_id}"
        items: List[str] = [
            f'<li><a href="/{escape(page.channel_name)}:{escape(page.short_channel_id)}/'
            f'{escape(claim.name)}">{escape(claim.title or claim.name)}</a></li>'
            for claim in page.claims
        ]
        nav = []
        if page.previous_page is not None:
            nav.append(f'<a href="{escape(base)}?p={page.previous_page}">previous</a>')
        if page.next_page is not None:
            nav.append(f'<a href="{escape(base)}?p={page.next_page}">next</a>')
        body = (
            f"<h1>{escape(page.channel_name)}</h1>\n"
            f"<p>{page.total_results} claims, page {page.current_page} of {page.total_pages}</p>\n"
            f"<ul>\n{''.join(items)}\n</ul>\n"
            f"<nav>{' '.join(nav)}</nav>"
        )
        return HTMLResponse(_page(page.channel_name, body))

    def no_channel(self) -> HTMLResponse:
        return HTMLResponse(_page("No channel", "<p>No matching channel could be found.</p>"))

    def no_claim(self) -> HTMLResponse:
        return HTMLResponse(_page("No claim", "<p>No matching claim could be found.</p>"))
