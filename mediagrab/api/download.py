import os
from contextlib import suppress
from urllib.parse import quote

import aiofiles
from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from mediagrab.api.deps import get_catalog_service, get_translator
from mediagrab.config.settings import config
from mediagrab.core.errors import DownloadNotFound
from mediagrab.core.logging import log_error, log_info
from mediagrab.models.request import DownloadRequest
from mediagrab.models.response import DownloadResponse
from mediagrab.services.catalog import CatalogService
from mediagrab.utils.filename import resolve_in_directory, sanitize_filename
from mediagrab.utils.locale import safe_url_for_log

CHUNK_SIZE = 4 * 1024 * 1024

router = APIRouter()


@router.post("/api/download", response_model=DownloadResponse)
async def download_video(
    request: Request,
    download_request: DownloadRequest,
    service: CatalogService = Depends(get_catalog_service),
    _=Depends(get_translator),
):
    """Download one format to the server and report the file name"""
    intent = download_request.to_intent()
    log_info(request, _(
        "log.starting_download",
        url=safe_url_for_log(intent.url),
        format=intent.format_id or config.ytdlp.default_format,
    ))

    result = await service.download(intent.url, intent.format_id)

    log_info(request, _("log.download_finished", filename=result.filename))
    return DownloadResponse(
        filename=result.filename,
        message=_("message.download_complete", filename=result.filename),
    )


@router.get("/api/files/{filename}")
async def serve_file(request: Request, filename: str):
    """Stream a finished download back to the browser"""
    path = resolve_in_directory(config.download.output_dir, filename)
    if path is None or not os.path.isfile(path):
        raise DownloadNotFound(f"No such download: {filename[:64]}")

    file_size = os.path.getsize(path)
    log_info(request, f"Serving {filename} ({file_size / 1024 / 1024:.1f} MB)")

    async def generate():
        try:
            async with aiofiles.open(path, "rb") as f:
                while True:
                    chunk = await f.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    yield chunk
        except OSError as e:
            log_error(request, f"Streaming error: {str(e)}")
            raise

        # Only reached once the last chunk went out; an aborted transfer keeps the file
        if config.download.cleanup_after_serve:
            with suppress(OSError):
                os.remove(path)
            log_info(request, f"Cleaned up {filename}")

    headers = {
        "Content-Disposition": f"attachment; filename*=UTF-8''{quote(sanitize_filename(filename))}",
        "X-Content-Type-Options": "nosniff",
        "Cache-Control": "no-cache",
        "Content-Length": str(file_size),
    }
    return StreamingResponse(generate(), media_type="application/octet-stream", headers=headers)
