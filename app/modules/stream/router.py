import logging
from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask
from app.api.deps import get_relay
from app.modules.catalog.errors import AssetPathUnresolvable, VideoNotFound
from app.modules.origin.errors import OriginError, OriginHttpError
from app.modules.stream.manifest import MANIFEST_CONTENT_TYPE, ManifestRewriteFailure
from app.modules.stream.service import InvalidAssetPath, StreamRelay

router = APIRouter()
logger = logging.getLogger(__name__)

# browsers only play cross-origin HLS/MP4 when these are present
CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Range",
    "Access-Control-Expose-Headers": "Content-Length, Content-Range, Accept-Ranges",
}
PASSTHROUGH_HEADERS = (
    "content-type", "content-length", "content-range", "content-encoding",
    "accept-ranges", "cache-control", "etag", "last-modified",
)


def _http_error(video_id: str, exc: Exception) -> HTTPException:
    if isinstance(exc, (VideoNotFound, AssetPathUnresolvable)):
        return HTTPException(status_code=404, detail="Video stream not available")
    if isinstance(exc, InvalidAssetPath):
        return HTTPException(status_code=400, detail=str(exc))
    if isinstance(exc, OriginHttpError) and exc.status == 404:
        return HTTPException(status_code=404, detail="Asset not found on origin")
    if isinstance(exc, ManifestRewriteFailure):
        logger.error(f"Manifest rewrite failed for {video_id}: {exc}")
        return HTTPException(status_code=502, detail="Origin returned an invalid manifest")
    logger.error(f"Relay failed for {video_id}: {exc}")
    return HTTPException(status_code=502, detail="Origin rejected the stream request")


async def _relay(relay: StreamRelay, request: Request, video_id: str, path: str | None):
    try:
        if relay.is_manifest_request(path):
            text = await relay.fetch_manifest(video_id, path)
            return Response(content=text, media_type=MANIFEST_CONTENT_TYPE, headers={**CORS_HEADERS, "Cache-Control": "no-cache"})
        upstream = await relay.open_media(video_id, path, request.headers.get("range"))
    except (VideoNotFound, AssetPathUnresolvable, InvalidAssetPath, ManifestRewriteFailure, OriginError) as e:
        raise _http_error(video_id, e)

    if upstream.is_error:
        status = upstream.status_code
        await upstream.aclose()
        raise _http_error(video_id, OriginHttpError(status, "", str(upstream.url)))

    headers = {k: v for k, v in upstream.headers.items() if k.lower() in PASSTHROUGH_HEADERS}
    headers.setdefault("content-type", "application/octet-stream")
    headers.update(CORS_HEADERS)
    return StreamingResponse(
        upstream.aiter_raw(),
        status_code=upstream.status_code,
        headers=headers,
        background=BackgroundTask(upstream.aclose),
    )


@router.get("/{video_id}/manifest")
async def stream_manifest(video_id: str, request: Request, relay: StreamRelay = Depends(get_relay)):
    return await _relay(relay, request, video_id, None)


@router.get("/{video_id}/segment")
async def stream_segment(
    video_id: str,
    request: Request,
    path: str = Query(..., min_length=1),
    relay: StreamRelay = Depends(get_relay),
):
    return await _relay(relay, request, video_id, path)


@router.get("/{video_id}/mp4")
async def stream_mp4(video_id: str, request: Request, relay: StreamRelay = Depends(get_relay)):
    return await _relay(relay, request, video_id, relay.mp4_name)
