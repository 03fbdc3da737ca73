"""Selection session transitions and the asyncio controller driving them."""
import asyncio

import pytest

from mediagrab.core.errors import InvalidUpstreamData, UpstreamErrorKind, UpstreamUnavailable
from mediagrab.core.security import UNKNOWN_PLATFORM
from mediagrab.models.internal import DownloadResult
from mediagrab.services.catalog import CatalogBuilder, CatalogService
from mediagrab.services.session import (
    MessageKind,
    Operation,
    SelectionSession,
    SessionController,
    apply_catalog,
    apply_download,
    apply_error,
    begin_download,
    begin_fetch,
    change_url,
    is_current,
    select_format,
)

from tests.conftest import SCENARIO_RECORDS, YOUTUBE_URL, FakeFormatSource

FIRST_URL = "https://www.youtube.com/watch?v=first000001"
SECOND_URL = "https://youtu.be/second00002"


def loaded_session(url=YOUTUBE_URL):
    session, ticket = begin_fetch(change_url(SelectionSession(), url))
    catalog = CatalogBuilder().build(SCENARIO_RECORDS, url=url, title="Sample clip")
    return apply_catalog(session, ticket, catalog)


class GatedService:
    """CatalogService wrapper holding the fetch of one URL until released"""

    def __init__(self, inner, gated_url):
        self.inner = inner
        self.gated_url = gated_url
        self.started = asyncio.Event()
        self.release = asyncio.Event()
        self.calls = []
        self.completed = []

    async def get_catalog(self, url):
        self.calls.append(url)
        if url == self.gated_url:
            self.started.set()
            await self.release.wait()
        catalog = await self.inner.get_catalog(url)
        self.completed.append(url)
        return catalog

    async def download(self, url, format_id=None):
        return await self.inner.download(url, format_id)


class TestTransitions:
    def test_change_url_detects_platform(self):
        session = change_url(SelectionSession(), f"  {YOUTUBE_URL} ")

        assert session.url == YOUTUBE_URL
        assert session.platform == "YouTube"
        assert session.can_fetch
        assert session.message_kind is MessageKind.NONE

    def test_same_url_is_a_no_op(self):
        session = loaded_session()
        assert change_url(session, YOUTUBE_URL) is session

    def test_unsupported_url_shows_error(self):
        session = change_url(SelectionSession(), "https://example.com/video")

        assert session.platform == UNKNOWN_PLATFORM
        assert session.message == "This platform is not supported yet."
        assert session.message_kind is MessageKind.ERROR
        assert not session.can_fetch

    def test_unsupported_url_error_is_localized(self):
        session = change_url(SelectionSession(locale="ja"), "https://example.com/video")
        assert session.message == "このプラットフォームにはまだ対応していません。"

    def test_incomplete_url_is_silent(self):
        session = change_url(SelectionSession(), "https://")
        assert session.message == ""
        session = change_url(session, "not a url yet")
        assert session.message == ""
        assert not session.can_fetch

    def test_clearing_url_resets_everything(self):
        session = select_format(loaded_session(), "1")
        cleared = change_url(session, "")

        assert cleared.is_empty
        assert cleared.catalog is None
        assert cleared.selected_format_id is None
        assert cleared.platform == ""

    def test_changing_url_drops_catalog(self):
        session = change_url(loaded_session(), SECOND_URL)
        assert session.catalog is None
        assert session.url == SECOND_URL

    def test_catalog_applied(self):
        session = loaded_session()

        assert not session.fetching
        assert session.catalog.best_video.id == "1"
        assert session.catalog.best_audio.id == "2"

    def test_stale_catalog_is_discarded(self):
        session, ticket = begin_fetch(change_url(SelectionSession(), FIRST_URL))
        session = change_url(session, SECOND_URL)
        catalog = CatalogBuilder().build(SCENARIO_RECORDS, url=FIRST_URL)

        assert not is_current(session, ticket)
        assert apply_catalog(session, ticket, catalog) is session

    def test_refetch_supersedes_earlier_fetch(self):
        session, old = begin_fetch(change_url(SelectionSession(), YOUTUBE_URL))
        session, new = begin_fetch(session)
        catalog = CatalogBuilder().build(SCENARIO_RECORDS, url=YOUTUBE_URL)

        assert apply_catalog(session, old, catalog) is session
        assert apply_catalog(session, new, catalog).catalog is catalog

    def test_fetch_error_message(self):
        session, ticket = begin_fetch(change_url(SelectionSession(), YOUTUBE_URL))
        session = apply_error(session, ticket, UpstreamUnavailable(UpstreamErrorKind.NOT_FOUND))

        assert not session.fetching
        assert session.message == "Video not found or unavailable."
        assert session.message_kind is MessageKind.ERROR

    def test_unexpected_error_message(self):
        session, ticket = begin_fetch(change_url(SelectionSession(), YOUTUBE_URL))
        session = apply_error(session, ticket, RuntimeError("boom"))
        assert session.message == "Something went wrong. Please try again."

    def test_stale_error_is_discarded(self):
        session, ticket = begin_fetch(change_url(SelectionSession(), FIRST_URL))
        session = change_url(session, "")
        assert apply_error(session, ticket, InvalidUpstreamData()) is session

    def test_download_completes(self):
        session, ticket = begin_download(loaded_session(), "1")

        assert ticket.operation is Operation.DOWNLOAD
        assert session.downloading and session.busy
        assert session.selected_format_id == "1"

        session = apply_download(session, ticket, DownloadResult(filename="clip.mp4", path="/d/clip.mp4"))
        assert not session.busy
        assert session.message == "Download completed! File: clip.mp4"
        assert session.message_kind is MessageKind.SUCCESS

    def test_newer_download_supersedes_older(self):
        session, first = begin_download(loaded_session(), "1")
        session, second = begin_download(session, "2")
        result = DownloadResult(filename="clip.mp4", path="/d/clip.mp4")

        assert apply_download(session, first, result) is session
        assert apply_download(session, second, result).message_kind is MessageKind.SUCCESS

    def test_download_result_dropped_after_url_change(self):
        session, ticket = begin_download(loaded_session(), "1")
        session = change_url(session, SECOND_URL)
        result = DownloadResult(filename="clip.mp4", path="/d/clip.mp4")

        assert apply_download(session, ticket, result) is session
        assert session.message == ""


class TestController:
    @pytest.mark.asyncio
    async def test_debounce_fetches_only_last_url(self, fake_source, catalog_service):
        controller = SessionController(catalog_service, debounce_seconds=0.05)

        controller.input_url(FIRST_URL)
        controller.input_url(SECOND_URL)
        session = await controller.wait_idle()

        assert fake_source.fetch_calls == [SECOND_URL]
        assert session.catalog.url == SECOND_URL
        assert not session.fetching

    @pytest.mark.asyncio
    async def test_unfetchable_url_never_reaches_service(self, fake_source, catalog_service):
        controller = SessionController(catalog_service, debounce_seconds=0)

        controller.input_url("https://example.com/video")
        session = await controller.wait_idle()

        assert fake_source.fetch_calls == []
        assert session.message_kind is MessageKind.ERROR

    @pytest.mark.asyncio
    async def test_stale_fetch_finishes_but_is_ignored(self, catalog_service):
        service = GatedService(catalog_service, gated_url=FIRST_URL)
        controller = SessionController(service, debounce_seconds=0)

        controller.input_url(FIRST_URL)
        await asyncio.wait_for(service.started.wait(), timeout=1)
        controller.input_url(SECOND_URL)

        for _ in range(100):
            if controller.session.catalog is not None:
                break
            await asyncio.sleep(0.01)
        assert controller.session.catalog.url == SECOND_URL

        service.release.set()
        session = await controller.wait_idle()

        assert service.completed == [SECOND_URL, FIRST_URL]
        assert session.catalog.url == SECOND_URL

    @pytest.mark.asyncio
    async def test_fetch_error_surfaces_as_message(self):
        source = FakeFormatSource(error=UpstreamUnavailable(UpstreamErrorKind.TIMEOUT))
        controller = SessionController(CatalogService(source), debounce_seconds=0, locale="ja")

        controller.input_url(YOUTUBE_URL)
        session = await controller.wait_idle()

        assert session.catalog is None
        assert session.message == "動画サイトの応答がタイムアウトしました。もう一度お試しください。"

    @pytest.mark.asyncio
    async def test_download(self, fake_source, catalog_service):
        controller = SessionController(catalog_service, debounce_seconds=0)
        controller.input_url(YOUTUBE_URL)
        await controller.wait_idle()

        controller.select("2")
        controller.download(controller.session.selected_format_id)
        session = await controller.wait_idle()

        assert fake_source.download_calls == [(YOUTUBE_URL, "2")]
        assert session.message == "Download completed! File: clip [abc].mp4"

    @pytest.mark.asyncio
    async def test_close_cancels_pending_fetch(self, fake_source, catalog_service):
        controller = SessionController(catalog_service, debounce_seconds=10)

        controller.input_url(YOUTUBE_URL)
        controller.close()
        await controller.wait_idle()

        assert fake_source.fetch_calls == []

    @pytest.mark.asyncio
    async def test_refresh_retries_after_failure(self):
        source = FakeFormatSource(error=UpstreamUnavailable(UpstreamErrorKind.TIMEOUT))
        controller = SessionController(CatalogService(source), debounce_seconds=0)

        controller.input_url(YOUTUBE_URL)
        session = await controller.wait_idle()
        assert session.message_kind is MessageKind.ERROR

        # Same text again is a no-op, so only refresh can retry
        assert controller.input_url(YOUTUBE_URL) is session

        source.error = None
        assert controller.refresh().fetching
        session = await controller.wait_idle()

        assert source.fetch_calls == [YOUTUBE_URL, YOUTUBE_URL]
        assert session.catalog.best_video.id == "1"
        assert session.message_kind is MessageKind.NONE

    @pytest.mark.asyncio
    async def test_refresh_skips_debounce(self, fake_source, catalog_service):
        controller = SessionController(catalog_service, debounce_seconds=10)

        controller.input_url(YOUTUBE_URL)
        controller.refresh()
        session = await controller.wait_idle()

        assert fake_source.fetch_calls == [YOUTUBE_URL]
        assert session.catalog is not None

    @pytest.mark.asyncio
    async def test_refresh_ignores_unfetchable_url(self, fake_source, catalog_service):
        controller = SessionController(catalog_service, debounce_seconds=0)

        controller.input_url("https://example.com/video")
        session = controller.refresh()
        await controller.wait_idle()

        assert not session.fetching
        assert fake_source.fetch_calls == []
