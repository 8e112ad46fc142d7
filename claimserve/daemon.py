"""JSON-RPC client for the content network daemon."""
from __future__ import annotations

from typing import Any, Dict, Optional

import httpx

from claimserve.logger import get_logger
from claimserve.models import ClaimRecord

logger = get_logger(__name__)


class DaemonError(Exception):
    """The daemon answered with an error payload or a bad status."""


class DaemonUnavailable(DaemonError):
    """The daemon could not be reached."""


def _float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def claim_from_daemon(payload: Dict[str, Any]) -> ClaimRecord:
    """Map a daemon claim dict onto a ClaimRecord.

    Metadata lives under value.stream (content claims); the signing channel id
    under value.publisherSignature.
    """
    value = payload.get("value") or {}
    stream = value.get("stream") or {}
    metadata = stream.get("metadata") or {}
    source = stream.get("source") or {}
    signature = value.get("publisherSignature") or {}

    return ClaimRecord(
        claim_id=payload["claim_id"],
        name=payload["name"],
        title=metadata.get("title") or "",
        description=metadata.get("description") or "",
        thumbnail=metadata.get("thumbnail") or None,
        content_type=source.get("contentType") or payload.get("content_type"),
        nsfw=bool(metadata.get("nsfw", False)),
        channel_name=payload.get("channel_name"),
        certificate_id=signature.get("certificateId") or payload.get("certificate_id"),
        height=int(payload.get("height") or 0),
        effective_amount=_float(payload.get("effective_amount", payload.get("amount"))),
    )


class DaemonClient:
    """Thin async wrapper around the daemon's JSON-RPC endpoint."""

    def __init__(
        self,
        url: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._url = url
        self._timeout = timeout
        self._transport = transport

    async def _call(self, method: str, params: Dict[str, Any]) -> Any:
        logger.debug("daemon %s %s", method, params)
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                response = await client.post(
                    self._url, json={"method": method, "params": params}
                )
        except (httpx.TimeoutException, httpx.NetworkError) as exc:
            raise DaemonUnavailable(f"{method}: {exc}") from exc

        if response.status_code != 200:
            raise DaemonError(f"{method}: HTTP {response.status_code}")

        data = response.json()
        error = data.get("error")
        if error:
            message = error.get("message") if isinstance(error, dict) else str(error)
            raise DaemonError(f"{method}: {message}")
        return data.get("result")

    async def claim_list(self, name: str) -> Dict[str, Any]:
        return await self._call("claim_list", {"name": name})

    async def resolve(self, uri: str) -> Dict[str, Any]:
        return await self._call("resolve", {"uri": uri})

    async def get_claim(self, name: str, claim_id: str) -> Dict[str, Any]:
        """Download a claim; the result carries download_path and mime_type."""
        return await self._call("get", {"uri": f"{name}#{claim_id}"})

