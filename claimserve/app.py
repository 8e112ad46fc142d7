"""FastAPI app: daemon API routes plus the claim / channel serve routes."""
from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, FastAPI, HTTPException, Request
from fastapi.responses import FileResponse, JSONResponse

from claimserve.config import Settings, get_settings
from claimserve.daemon import DaemonClient, DaemonError, DaemonUnavailable, claim_from_daemon
from claimserve.db import SqliteClaimIndex
from claimserve.delivery import Delivery
from claimserve.identifiers import apply_legacy_ordering_fix, is_channel, split_channel_token
from claimserve.logger import get_logger
from claimserve.models import ErrorResponse, FileRecord, NotFound
from claimserve.renderer import PageRenderer
from claimserve.resolver import ClaimIndex, Resolver
from claimserve.response_type import ResponseType, determine_response_type, extract_display_name

logger = get_logger(__name__)

router = APIRouter()


def _client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def _log_request_data(
    response_type: ResponseType,
    claim_name: str,
    channel_name: Optional[str],
    claim_id: Optional[str],
) -> None:
    logger.debug("responseType === %s", response_type.value)
    logger.debug("claim name === %s", claim_name)
    logger.debug("channel name === %s", channel_name)
    logger.debug("claim id === %s", claim_id)


async def handle_daemon_error(request: Request, exc: DaemonError) -> JSONResponse:
    logger.error("Request error on %s from %s: %s", request.url.path, _client_ip(request), exc)
    if isinstance(exc, DaemonUnavailable):
        status_code = 503
        message = "Connection refused. The daemon may not be running."
    else:
        status_code = 502
        message = str(exc)
    return JSONResponse(status_code=status_code, content=ErrorResponse(message=message).model_dump())


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s from %s", request.url.path, _client_ip(request))
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(message="Something went wrong on the server.").model_dump(),
    )


# --- API routes ---

@router.get("/api/claim_list/{name}")
async def claim_list(name: str, request: Request):
    """Run claim_list on the daemon and cache the claims in the index."""
    result: Any = await request.app.state.daemon.claim_list(name) or {}
    claims = [claim_from_daemon(claim) for claim in result.get("claims", [])]
    if claims:
        await request.app.state.index.save_claims(claims)
    return result


@router.get("/api/resolve/{uri}")
async def resolve(uri: str, request: Request):
    return await request.app.state.daemon.resolve(uri)


@router.get("/api/get_claim/{name}/{claim_id}")
async def get_claim(name: str, claim_id: str, request: Request):
    """Fetch an asset through the daemon, record it locally, and stream it."""
    result: Any = await request.app.state.daemon.get_claim(name, claim_id) or {}
    download_path = result.get("download_path")
    if not download_path:
        raise HTTPException(status_code=404, detail="The daemon returned no file for this claim")
    record = FileRecord(
        claim_id=claim_id,
        name=name,
        file_path=download_path,
        file_type=result.get("mime_type"),
    )
    await request.app.state.index.save_file(record)
    return FileResponse(record.file_path, media_type=record.file_type)


# --- Serve routes (registered last: they match any one or two segments) ---

@router.get("/{identifier}/{name}")
async def serve_claim(identifier: str, name: str, request: Request):
    """identifier is @channel, @channel:channel_id, or a (short) claim id; name is name[.ext]."""
    state = request.app.state
    # old URLs were /name/claim_id
    identifier, name = apply_legacy_ordering_fix(
        identifier, name, state.settings.legacy_short_id_rule
    )
    response_type = determine_response_type(name, request.headers)
    claim_name = extract_display_name(name)

    channel_name: Optional[str] = None
    channel_id: Optional[str] = None
    claim_id: Optional[str] = None
    if is_channel(identifier):
        channel = split_channel_token(identifier)
        channel_name, channel_id = channel.channel_name, channel.channel_id
    else:
        claim_id = identifier
    _log_request_data(response_type, claim_name, channel_name, claim_id)

    lookup = await state.resolver.get_claim_id(channel_name, channel_id, claim_name, claim_id)
    if isinstance(lookup, NotFound):
        return state.delivery.not_found(lookup)
    return await state.delivery.deliver(response_type, lookup)


@router.get("/{uri}")
async def serve_uri(uri: str, request: Request):
    """A channel page (@channel[:id]) or the winning claim for a name."""
    state = request.app.state
    if is_channel(uri):
        channel = split_channel_token(uri)
        logger.debug("channel name = %s, channel id = %s", channel.channel_name, channel.channel_id)
        contents = await state.resolver.get_channel_contents(channel.channel_name, channel.channel_id)
        return state.delivery.channel(contents, request.query_params)

    response_type = determine_response_type(uri, request.headers)
    claim_name = extract_display_name(uri)
    _log_request_data(response_type, claim_name, None, None)

    lookup = await state.resolver.get_claim_id(None, None, claim_name, None)
    if isinstance(lookup, NotFound):
        return state.delivery.not_found(lookup)
    return await state.delivery.deliver(response_type, lookup)


def create_app(
    settings: Optional[Settings] = None,
    index: Optional[ClaimIndex] = None,
    daemon: Optional[DaemonClient] = None,
    renderer: Optional[PageRenderer] = None,
) -> FastAPI:
    settings = settings or get_settings()
    if index is None:
        sqlite_index = SqliteClaimIndex(settings.db_path)
        sqlite_index.init()
        index = sqlite_index
    daemon = daemon or DaemonClient(settings.daemon_url, timeout=settings.daemon_timeout)
    renderer = renderer or PageRenderer(settings.site_host)

    app = FastAPI(title="Claim Server", version="1.0.0")
    app.state.settings = settings
    app.state.index = index
    app.state.daemon = daemon
    app.state.resolver = Resolver(index, settings.short_id_rule)
    app.state.delivery = Delivery(index, renderer)

    app.add_exception_handler(DaemonError, handle_daemon_error)
    app.add_exception_handler(Exception, handle_unexpected_error)
    app.include_router(router)
    return app
