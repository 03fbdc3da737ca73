from .format import Catalog, ClassifiedFormat, FormatClass, RawFormatRecord, VideoMetadata
from .internal import DownloadIntent, DownloadResult
from .request import DownloadRequest, FormatsRequest
from .response import CatalogResponse, DownloadResponse, ErrorResponse

__all__ = [
    "Catalog",
    "CatalogResponse",
    "ClassifiedFormat",
    "DownloadIntent",
    "DownloadRequest",
    "DownloadResponse",
    "DownloadResult",
    "ErrorResponse",
    "FormatClass",
    "FormatsRequest",
    "RawFormatRecord",
    "VideoMetadata",
]
