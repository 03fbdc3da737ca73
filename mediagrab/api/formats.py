from fastapi import APIRouter, Depends, Query, Request

from mediagrab.api.deps import get_catalog_service, get_translator
from mediagrab.core.logging import log_info
from mediagrab.models.response import CatalogResponse
from mediagrab.services.catalog import CatalogService
from mediagrab.utils.locale import safe_url_for_log

router = APIRouter()


@router.get("/api/formats", response_model=CatalogResponse)
async def get_formats(
    request: Request,
    url: str = Query(..., description="Video URL"),
    service: CatalogService = Depends(get_catalog_service),
    _=Depends(get_translator),
):
    """List the formats available for a video, grouped and ranked"""
    log_info(request, _("log.fetching_formats", url=safe_url_for_log(url)))

    catalog = await service.get_catalog(url)

    log_info(request, _("log.catalog_ready", title=catalog.title, count=len(catalog.formats)))
    return CatalogResponse(catalog=catalog)
