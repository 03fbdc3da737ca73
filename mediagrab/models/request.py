from typing import Optional

from pydantic import BaseModel, Field, field_validator

from mediagrab.models.internal import DownloadIntent


class FormatsRequest(BaseModel):
    # Plain string on purpose: syntax and platform checks raise InvalidInput downstream
    url: str = Field(..., description="Video URL")

    @field_validator("url")
    @classmethod
    def strip_url(cls, v):
        return v.strip()


class DownloadRequest(FormatsRequest):
    format_id: Optional[str] = Field(
        None,
        alias="formatId",
        description="Format id from the catalog; the configured default when absent",
    )

    model_config = {"populate_by_name": True}

    def to_intent(self) -> DownloadIntent:
        """Convert to download intent"""
        return DownloadIntent(url=self.url, format_id=self.format_id)
