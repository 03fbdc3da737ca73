from typing import Optional

from pydantic import BaseModel


class DownloadIntent(BaseModel):
    """Internal download intent (separated from HTTP concerns)"""
    url: str
    format_id: Optional[str] = None


class DownloadResult(BaseModel):
    """Where a finished download ended up"""
    filename: str
    path: str
