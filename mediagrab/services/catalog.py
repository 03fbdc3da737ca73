import json
import logging
import os
import re
from collections.abc import Mapping
from typing import Any, List, Optional

from pydantic import ValidationError

from mediagrab.config.settings import config
from mediagrab.core.errors import InvalidInput, InvalidInputReason, InvalidUpstreamData
from mediagrab.core.security import SecurityValidator, get_platform_name
from mediagrab.infra.redis import get_redis
from mediagrab.models.format import Catalog, ClassifiedFormat, RawFormatRecord, is_sentinel, lenient_seconds
from mediagrab.models.internal import DownloadIntent, DownloadResult
from mediagrab.services.extractor import FormatSource
from mediagrab.services.format import classify, partition, rank_audio, rank_video
from mediagrab.utils.formatting import UNKNOWN, format_duration, format_size
from mediagrab.utils.hash import cache_key
from mediagrab.utils.locale import safe_url_for_log

logger = logging.getLogger(__name__)

FORMAT_ID_PATTERN = re.compile(r"^[A-Za-z0-9_.+\-]{1,64}$")


def _to_record(item: Any, index: int) -> RawFormatRecord:
    if isinstance(item, RawFormatRecord):
        return item
    if not isinstance(item, Mapping):
        raise InvalidUpstreamData(f"Format #{index} is not a record: {type(item).__name__}")
    try:
        return RawFormatRecord.model_validate(dict(item))
    except ValidationError as e:
        raise InvalidUpstreamData(f"Format #{index} has no usable id: {e.errors()[0]['msg']}")


class CatalogBuilder:
    """Assemble raw yt-dlp records into a display-ready Catalog.

    Records without a container are dropped, later duplicates of an id are
    dropped, everything else is kept; fields that fail to parse show up as
    "Unknown" instead of failing the build. Only input that is not a
    sequence of records raises InvalidUpstreamData.
    """

    def __init__(self, legacy_audio_ranking: Optional[bool] = None):
        self.legacy_audio_ranking = legacy_audio_ranking

    def classify_record(self, record: RawFormatRecord) -> ClassifiedFormat:
        return ClassifiedFormat(
            **record.model_dump(include=set(RawFormatRecord.model_fields)),
            format_class=classify(record),
            size_text=format_size(record.size_bytes),
            duration_text=UNKNOWN if record.duration is None else format_duration(record.duration),
        )

    def build(
        self,
        raw_records: Any,
        *,
        url: Optional[str] = None,
        title: Optional[str] = None,
        thumbnail: Optional[str] = None,
        duration: Optional[float] = None,
    ) -> Catalog:
        if isinstance(raw_records, (str, bytes)) or not isinstance(raw_records, (list, tuple)):
            raise InvalidUpstreamData("Format list is not a sequence")

        seen = set()
        classified: List[ClassifiedFormat] = []
        for index, item in enumerate(raw_records):
            record = _to_record(item, index)

            if is_sentinel(record.container):
                logger.debug(f"Skipping format {record.id}: no container")
                continue
            if record.id in seen:
                logger.warning(f"Duplicate format id {record.id} ignored")
                continue
            seen.add(record.id)

            classified.append(self.classify_record(record))

        duration = lenient_seconds(duration)
        video, audio = partition(classified)
        video = rank_video(video)
        audio = rank_audio(audio, legacy=self.legacy_audio_ranking)

        return Catalog(
            url=url,
            title=title or UNKNOWN,
            thumbnail=thumbnail,
            platform=get_platform_name(url or ""),
            duration=duration,
            duration_text=format_duration(duration),
            video=tuple(video),
            audio=tuple(audio),
            best_video=video[0] if video else None,
            best_audio=audio[0] if audio else None,
        )


class CatalogService:
    """Entry point the UI layer uses: fetch a catalog, download a format"""

    def __init__(self, source: FormatSource, builder: Optional[CatalogBuilder] = None):
        self.source = source
        self.builder = builder or CatalogBuilder()

    async def get_catalog(self, url: str) -> Catalog:
        """
        Validate the URL, fetch formats through the source and build a Catalog.
        Results are cached in Redis per URL when it is available.
        """
        url = SecurityValidator.ensure_valid(url)

        key = cache_key("catalog", url)
        cached = await self._cache_get(key)
        if cached:
            return cached

        metadata = await self.source.fetch_raw_formats(url)
        catalog = self.builder.build(
            metadata.formats,
            url=url,
            title=metadata.title,
            thumbnail=metadata.thumbnail,
            duration=metadata.duration,
        )
        logger.info(
            f"Catalog for {safe_url_for_log(url)}: "
            f"{len(catalog.video)} video, {len(catalog.audio)} audio"
        )

        await self._cache_set(key, catalog)
        return catalog

    async def download(self, url: str, format_id: Optional[str] = None) -> DownloadResult:
        intent = self.to_intent(url, format_id)
        path = await self.source.perform_download(intent.url, intent.format_id)
        result = DownloadResult(filename=os.path.basename(path), path=path)
        logger.info(f"Downloaded {safe_url_for_log(intent.url)} to {result.filename}")
        return result

    @staticmethod
    def to_intent(url: str, format_id: Optional[str] = None) -> DownloadIntent:
        url = SecurityValidator.ensure_valid(url)

        if format_id is not None:
            format_id = format_id.strip() or None
        if format_id is not None and not FORMAT_ID_PATTERN.match(format_id):
            raise InvalidInput(InvalidInputReason.MALFORMED, f"Invalid format id: {format_id[:64]}")

        return DownloadIntent(url=url, format_id=format_id)

    async def _cache_get(self, key: str) -> Optional[Catalog]:
        redis = get_redis()
        if not redis or not config.catalog.cache_ttl:
            return None
        try:
            cached = await redis.get(key)
            if cached:
                return Catalog.model_validate(json.loads(cached))
        except Exception as e:
            logger.warning(f"Catalog cache read failed: {str(e)}")
        return None

    async def _cache_set(self, key: str, catalog: Catalog) -> None:
        redis = get_redis()
        if not redis or not config.catalog.cache_ttl:
            return
        try:
            await redis.setex(key, config.catalog.cache_ttl, catalog.model_dump_json())
        except Exception as e:
            logger.warning(f"Catalog cache write failed: {str(e)}")
