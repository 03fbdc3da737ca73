import functools

from fastapi import Request

from mediagrab.i18n import i18n
from mediagrab.services.catalog import CatalogService
from mediagrab.services.extractor import YtDlpFormatSource
from mediagrab.utils.locale import get_locale

_service = CatalogService(YtDlpFormatSource())


def get_catalog_service() -> CatalogService:
    """Overridden in tests with a service backed by canned formats"""
    return _service


def get_translator(request: Request):
    locale = get_locale(request.headers.get("accept-language"))
    return functools.partial(i18n.get, locale=locale)
