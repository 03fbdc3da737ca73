"""Selection session: the state the browser page drives.

A ``SelectionSession`` is an immutable value. Every user action goes through
a pure transition function that returns a new session. Long-running work
(catalog fetch, download) is represented by a ticket captured when the work
starts; its result is applied only if the session still matches the ticket,
otherwise it is stale and dropped.

``SessionController`` wires the transitions to a ``CatalogService`` with
asyncio: URL input is debounced, and once a subprocess has started it is
allowed to finish; only its result may be ignored.
"""
import asyncio
import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, Set, Tuple

from mediagrab.config.settings import config
from mediagrab.core.errors import MediaGrabError
from mediagrab.core.security import SecurityValidator, UrlValidationResult, get_platform_name
from mediagrab.i18n import i18n
from mediagrab.models.format import Catalog
from mediagrab.models.internal import DownloadResult

logger = logging.getLogger(__name__)


class MessageKind(str, Enum):
    NONE = "none"
    ERROR = "error"
    SUCCESS = "success"


class Operation(str, Enum):
    FETCH = "fetch"
    DOWNLOAD = "download"


@dataclass(frozen=True)
class Ticket:
    """Identifies one fetch or download started from a given session"""
    operation: Operation
    url: str
    seq: int
    format_id: Optional[str] = None


@dataclass(frozen=True)
class SelectionSession:
    url: str = ""
    platform: str = ""
    catalog: Optional[Catalog] = None
    selected_format_id: Optional[str] = None
    message: str = ""
    message_kind: MessageKind = MessageKind.NONE
    fetching: bool = False
    downloading: bool = False
    fetch_seq: int = 0
    download_seq: int = 0
    locale: Optional[str] = None

    @property
    def busy(self) -> bool:
        """An operation is in progress"""
        return self.fetching or self.downloading

    @property
    def can_fetch(self) -> bool:
        return SecurityValidator.validate_url(self.url) == UrlValidationResult.OK

    @property
    def is_empty(self) -> bool:
        return not self.url and self.catalog is None


def _error(session: SelectionSession, message: str) -> SelectionSession:
    return replace(session, message=message, message_kind=MessageKind.ERROR)


def change_url(session: SelectionSession, url: str) -> SelectionSession:
    """New URL text. Anything tied to the previous URL is dropped."""
    url = (url or "").strip()
    if url == session.url:
        return session

    # Bumping both counters makes every outstanding ticket stale
    fresh = SelectionSession(
        url=url,
        fetch_seq=session.fetch_seq + 1,
        download_seq=session.download_seq + 1,
        locale=session.locale,
    )
    if not url:
        return fresh

    result = SecurityValidator.validate_url(url)
    if result == UrlValidationResult.INVALID:
        return fresh

    fresh = replace(fresh, platform=get_platform_name(url))
    if result == UrlValidationResult.UNSUPPORTED:
        return _error(fresh, i18n.get("error.invalid_input.unsupported", locale=session.locale))
    return fresh


def begin_fetch(session: SelectionSession) -> Tuple[SelectionSession, Ticket]:
    seq = session.fetch_seq + 1
    ticket = Ticket(operation=Operation.FETCH, url=session.url, seq=seq)
    started = replace(
        session,
        fetch_seq=seq,
        fetching=True,
        message="",
        message_kind=MessageKind.NONE,
    )
    return started, ticket


def is_current(session: SelectionSession, ticket: Ticket) -> bool:
    if ticket.url != session.url:
        return False
    if ticket.operation is Operation.FETCH:
        return ticket.seq == session.fetch_seq
    return ticket.seq == session.download_seq


def apply_catalog(session: SelectionSession, ticket: Ticket, catalog: Catalog) -> SelectionSession:
    if not is_current(session, ticket):
        logger.debug("Discarding stale catalog")
        return session
    return replace(
        session,
        catalog=catalog,
        selected_format_id=None,
        fetching=False,
        message="",
        message_kind=MessageKind.NONE,
    )


def apply_error(session: SelectionSession, ticket: Ticket, error: Exception) -> SelectionSession:
    if not is_current(session, ticket):
        logger.debug("Discarding stale error")
        return session

    if isinstance(error, MediaGrabError):
        message = i18n.get(error.message_key, locale=session.locale)
    else:
        message = i18n.get("error.internal", locale=session.locale)
    if ticket.operation is Operation.FETCH:
        session = replace(session, fetching=False)
    else:
        session = replace(session, downloading=False)
    return _error(session, message)


def select_format(session: SelectionSession, format_id: Optional[str]) -> SelectionSession:
    return replace(session, selected_format_id=format_id)


def begin_download(
    session: SelectionSession,
    format_id: Optional[str] = None
) -> Tuple[SelectionSession, Ticket]:
    """Start a download; a newer one supersedes any still in flight"""
    seq = session.download_seq + 1
    ticket = Ticket(operation=Operation.DOWNLOAD, url=session.url, seq=seq, format_id=format_id)
    started = replace(
        session,
        download_seq=seq,
        selected_format_id=format_id,
        downloading=True,
        message="",
        message_kind=MessageKind.NONE,
    )
    return started, ticket


def apply_download(session: SelectionSession, ticket: Ticket, result: DownloadResult) -> SelectionSession:
    if not is_current(session, ticket):
        logger.debug("Discarding stale download result")
        return session
    return replace(
        session,
        downloading=False,
        message=i18n.get("message.download_complete", locale=session.locale, filename=result.filename),
        message_kind=MessageKind.SUCCESS,
    )


class SessionController:
    """Drive one SelectionSession against a CatalogService"""

    def __init__(self, service, debounce_seconds: Optional[float] = None, locale: Optional[str] = None):
        self.service = service
        self.debounce_seconds = config.ui.debounce_seconds if debounce_seconds is None else debounce_seconds
        self.session = SelectionSession(locale=locale)
        self._pending: Optional[asyncio.Task] = None
        self._tasks: Set[asyncio.Task] = set()

    def input_url(self, url: str) -> SelectionSession:
        """Record URL text and schedule a debounced fetch if it is fetchable"""
        previous = self.session
        self.session = change_url(self.session, url)
        if self.session is previous:
            return self.session

        self._cancel_pending()
        if self.session.can_fetch:
            self._pending = self._spawn(self._debounced_fetch())
        return self.session

    def refresh(self) -> SelectionSession:
        """Fetch the current URL again without waiting, e.g. after a failed fetch"""
        if not self.session.can_fetch or self.session.fetching:
            return self.session

        self._cancel_pending()
        self.session, ticket = begin_fetch(self.session)
        self._spawn(self._run(ticket))
        return self.session

    def download(self, format_id: Optional[str] = None) -> SelectionSession:
        self.session, ticket = begin_download(self.session, format_id)
        self._spawn(self._run(ticket))
        return self.session

    def select(self, format_id: Optional[str]) -> SelectionSession:
        self.session = select_format(self.session, format_id)
        return self.session

    async def wait_idle(self) -> SelectionSession:
        """Wait for every scheduled fetch/download, including ones started meanwhile"""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
        return self.session

    def close(self) -> None:
        self._cancel_pending()

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _cancel_pending(self) -> None:
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        self._pending = None

    async def _debounced_fetch(self) -> None:
        await asyncio.sleep(self.debounce_seconds)
        # Past the debounce window the fetch is no longer cancellable
        self._pending = None
        self.session, ticket = begin_fetch(self.session)
        await self._run(ticket)

    async def _run(self, ticket: Ticket) -> None:
        try:
            if ticket.operation is Operation.FETCH:
                catalog = await self.service.get_catalog(ticket.url)
                self.session = apply_catalog(self.session, ticket, catalog)
            else:
                result = await self.service.download(ticket.url, ticket.format_id)
                self.session = apply_download(self.session, ticket, result)
        except Exception as e:
            if not isinstance(e, MediaGrabError):
                logger.exception("Unexpected session error")
            self.session = apply_error(self.session, ticket, e)
