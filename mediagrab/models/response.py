from typing import Optional

from pydantic import BaseModel

from mediagrab.models.format import Catalog


class CatalogResponse(BaseModel):
    """Formats for one URL"""
    success: bool = True
    catalog: Catalog


class DownloadResponse(BaseModel):
    """Finished download"""
    success: bool = True
    filename: str
    message: str


class ErrorResponse(BaseModel):
    success: bool = False
    error: str
    code: str
    detail: Optional[str] = None
