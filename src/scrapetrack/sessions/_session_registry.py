from __future__ import annotations

import asyncio
from logging import getLogger
from typing import TYPE_CHECKING

from scrapetrack._consts import DEFAULT_CANCEL_REASON
from scrapetrack._utils.context import ensure_context
from scrapetrack._utils.crypto import generate_session_id
from scrapetrack._utils.docs import docs_group
from scrapetrack._utils.time import utc_now
from scrapetrack.errors import RemoteLogError, SessionNotFoundError, ValidationError
from scrapetrack.events import Event, EventSessionData
from scrapetrack.history import HistoryRecord, ProgressCounter, SelectedProduct
from scrapetrack.remote_log import LogEntry, LogEntryUpdate

from ._mirror import MirrorQueue
from ._models import Progress, Session, SessionItem

if TYPE_CHECKING:
    from datetime import datetime, timedelta
    from types import TracebackType

    from scrapetrack._types import ItemOutcome
    from scrapetrack.events import EventManager
    from scrapetrack.history import HistoryStore
    from scrapetrack.remote_log import RemoteLogClient

    from ._models import SessionConfig

logger = getLogger(__name__)

_ACTION_START = 'start_category_scraping'
_ACTION_SCRAPE = 'scrape_category_products'
_ACTION_CANCEL = 'cancel_scraping'


@docs_group('Classes')
class SessionRegistry:
    """Authoritative, in-memory state of the scraping sessions currently in flight.

    The registry owns a mapping from session id to `Session`. Every change of a session is applied to that mapping
    first and then mirrored into the `HistoryStore` and the remote scrape log. Mirroring runs in background tasks
    chained per session, so the mirrors always receive the updates of one session in the order they were made.
    `advance` and `cancel` wait for their own mirror task and re-raise a `RemoteLogError` from it, but the in-memory
    transition is never rolled back.

    A session is evicted from the registry once it completes (all its items were processed) or is cancelled. Its
    history record stays in the history store.

    Each item URL of a session counts once: reporting an outcome for an item that already has one is ignored with
    a warning.

    ### Usage

    ```python
    from scrapetrack.history import HistoryStore
    from scrapetrack.remote_log import MemoryRemoteLogClient
    from scrapetrack.sessions import ItemSelection, SessionConfig, SessionRegistry

    history = await HistoryStore.open()

    async with SessionRegistry(history=history, remote_log=MemoryRemoteLogClient()) as registry:
        session_id = await registry.start(
            SessionConfig(
                platform='flipkart',
                category='mobiles',
                category_url='https://www.flipkart.com/mobiles',
                items=[ItemSelection(url='https://www.flipkart.com/p/1', title='Phone')],
            )
        )
        await registry.advance(session_id, 'https://www.flipkart.com/p/1', 'success')
    ```
    """

    def __init__(
        self,
        *,
        history: HistoryStore,
        remote_log: RemoteLogClient,
        event_manager: EventManager | None = None,
        close_timeout: timedelta | None = None,
    ) -> None:
        """Initialize a new instance.

        Args:
            history: The history store receiving a record for every session.
            remote_log: Client of the remote scrape log.
            event_manager: Optional event manager notified about session lifecycle changes. Events are emitted only
                while the event manager is active.
            close_timeout: How long to wait for pending mirror operations when leaving the context. `None` waits
                until they finish.
        """
        self._history = history
        self._remote_log = remote_log
        self._event_manager = event_manager
        self._close_timeout = close_timeout

        self._sessions = dict[str, Session]()
        self._current_progress: Progress | None = None
        self._lock = asyncio.Lock()
        self._mirror_queue = MirrorQueue()

        self._active = False

    @property
    def active(self) -> bool:
        """Indicate whether the context is active."""
        return self._active

    async def __aenter__(self) -> SessionRegistry:
        """Activate the registry upon entering the async context.

        Raises:
            RuntimeError: If the context manager is already active.
        """
        if self._active:
            raise RuntimeError(f'The {self.__class__.__name__} is already active.')

        self._active = True
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        exc_traceback: TracebackType | None,
    ) -> None:
        """Wait for pending mirror operations and deactivate the registry upon exiting the async context.

        Raises:
            RuntimeError: If the context manager is not active.
        """
        if not self._active:
            raise RuntimeError(f'The {self.__class__.__name__} is not active.')

        await self._mirror_queue.drain(timeout=self._close_timeout)

        if self._sessions:
            logger.info(f'Closing the session registry with {len(self._sessions)} unfinished sessions.')

        self._active = False

    @ensure_context
    async def start(self, config: SessionConfig) -> str:
        """Start a new session.

        The history record is written first (`pending`), then the remote log entry is created. Only after both
        exist is the session inserted (`in_progress`) and published as the current progress.

        Args:
            config: The session configuration. Only items with `selected` set are tracked.

        Returns:
            Id of the new session.

        Raises:
            ValidationError: If no item is selected. Nothing is written in that case.
            RemoteLogError: If the remote log entry could not be created. The history record written before is
                marked as `failed` and no session is created.
        """
        selected = config.selected_items
        if not selected:
            raise ValidationError('A session needs at least one selected item.')

        session_id = generate_session_id()
        started_at = utc_now()

        record = await self._history.upsert(
            HistoryRecord(
                when=started_at,
                started_at=started_at,
                platform=config.platform,
                type='category',
                url=config.category_url,
                category=config.category,
                status='pending',
                action=_ACTION_START,
                operation_id=config.operation_id,
                total_products=len(selected),
                selected_products=[SelectedProduct(url=item.url, title=item.title) for item in selected],
                session_id=session_id,
            )
        )

        try:
            remote_log_id = await self._remote_log.create(
                LogEntry(
                    when=started_at,
                    platform=config.platform,
                    type='category',
                    url=config.category_url,
                    category=config.category,
                    status='pending',
                    action=_ACTION_START,
                    operation_id=config.operation_id,
                )
            )
        except RemoteLogError as exc:
            logger.warning(f'Failed to create the remote scrape log for session {session_id}: {exc}')
            await self._history.update(record.id, status='failed', error_message=str(exc))
            raise

        session = Session(
            id=session_id,
            log_id=record.id,
            remote_log_id=remote_log_id,
            config=config,
            items=[SessionItem(url=item.url, title=item.title) for item in selected],
            status='in_progress',
            progress=Progress(total=len(selected)),
            started_at=started_at,
        )

        async with self._lock:
            self._sessions[session_id] = session
            self._current_progress = session.progress.model_copy()
            snapshot = session.model_copy(deep=True)

        logger.info(
            f'Session {session_id} started.',
            extra={'platform': config.platform, 'category': config.category, 'total': len(selected)},
        )

        task = self._submit_mirror(snapshot, action=_ACTION_SCRAPE, at=started_at, scrape_log_id=remote_log_id)
        self._emit(Event.SESSION_STARTED, snapshot)

        try:
            await asyncio.shield(task)
        except RemoteLogError as exc:
            logger.warning(f'Session {session_id} started, but the remote scrape log was not updated: {exc}')

        return session_id

    @ensure_context
    async def advance(
        self,
        session_id: str,
        item_url: str,
        outcome: ItemOutcome,
        error_message: str | None = None,
    ) -> None:
        """Record the outcome of one item of a session.

        Once every selected item has an outcome, the session becomes `completed` and is evicted.

        Args:
            session_id: Id of an active session.
            item_url: URL of a selected item of the session.
            outcome: `success` or `failed`.
            error_message: Optional error description for failed items.

        Raises:
            SessionNotFoundError: If the session is unknown or was already evicted.
            ValidationError: If the outcome is invalid or the URL is not among the selected items.
            RemoteLogError: If the remote log update failed. The local state has already advanced.
        """
        if outcome not in ('success', 'failed'):
            raise ValidationError(f'Unknown item outcome {outcome!r}, expected "success" or "failed".')

        async with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                raise SessionNotFoundError(session_id)

            matching = [item for item in session.items if item.url == item_url]
            if not matching:
                raise ValidationError(f'Item {item_url} is not selected in session {session_id}.')

            item = next((item for item in matching if item.status == 'pending'), None)
            if item is None:
                logger.warning(f'Item {item_url} of session {session_id} already has an outcome, ignoring.')
                return

            now = utc_now()
            item.status = outcome
            item.error_message = error_message

            if outcome == 'success':
                session.progress.scraped += 1
            else:
                session.progress.failed += 1

            if session.progress.is_finished:
                session.status = 'completed'
                session.completed_at = now
                del self._sessions[session_id]
                self._current_progress = None
                event = Event.SESSION_COMPLETED
            else:
                self._current_progress = session.progress.model_copy()
                event = Event.SESSION_PROGRESS

            snapshot = session.model_copy(deep=True)

        if event == Event.SESSION_COMPLETED:
            logger.info(
                f'Session {session_id} completed.',
                extra={'scraped': snapshot.progress.scraped, 'failed': snapshot.progress.failed},
            )
        else:
            logger.debug(
                f'Session {session_id}: {snapshot.progress.processed}/{snapshot.progress.total} items processed.'
            )

        task = self._submit_mirror(snapshot, action=_ACTION_SCRAPE, at=now)
        self._emit(event, snapshot)
        await asyncio.shield(task)

    @ensure_context
    async def cancel(self, session_id: str, reason: str | None = None) -> None:
        """Cancel an active session.

        Only bookkeeping is affected, work already running elsewhere is not interrupted.

        Args:
            session_id: Id of an active session.
            reason: Optional reason, stored as the error message of the session.

        Raises:
            SessionNotFoundError: If the session is unknown or was already evicted.
            RemoteLogError: If the remote log update failed. The session is cancelled anyway.
        """
        async with self._lock:
            session = self._sessions.pop(session_id, None)
            if session is None:
                raise SessionNotFoundError(session_id)

            now = utc_now()
            session.status = 'cancelled'
            session.completed_at = now
            session.error_message = reason or DEFAULT_CANCEL_REASON
            self._current_progress = None

            snapshot = session.model_copy(deep=True)

        logger.info(f'Session {session_id} cancelled: {snapshot.error_message}')

        task = self._submit_mirror(snapshot, action=_ACTION_CANCEL, at=now)
        self._emit(Event.SESSION_CANCELLED, snapshot)
        await asyncio.shield(task)

    @ensure_context
    def get(self, session_id: str) -> Session | None:
        """Get a copy of an active session, or `None` if it is unknown or was evicted."""
        session = self._sessions.get(session_id)
        return session.model_copy(deep=True) if session else None

    @ensure_context
    def list_active(self) -> list[Session]:
        """Copies of all active sessions."""
        return [session.model_copy(deep=True) for session in self._sessions.values()]

    @ensure_context
    def current_progress(self) -> Progress | None:
        """Progress of the most recently started or advanced session, `None` after a session finished."""
        return self._current_progress.model_copy() if self._current_progress else None

    def _submit_mirror(
        self,
        snapshot: Session,
        *,
        action: str,
        at: datetime,
        scrape_log_id: str | None = None,
    ) -> asyncio.Task[None]:
        progress = snapshot.progress
        duration = snapshot.duration(at)

        history_changes = {
            'status': snapshot.status,
            'action': action,
            'scraped_products': progress.scraped,
            'failed_products': progress.failed,
            'completed_at': snapshot.completed_at,
            'selected_products': [
                SelectedProduct(url=item.url, title=item.title, status=item.status, error_message=item.error_message)
                for item in snapshot.items
            ],
        }
        if snapshot.error_message is not None:
            history_changes['error_message'] = snapshot.error_message
        if scrape_log_id is not None:
            history_changes['scrape_log_id'] = scrape_log_id

        log_update = LogEntryUpdate(
            when=at,
            platform=snapshot.config.platform,
            type='category',
            category=snapshot.config.category,
            status=snapshot.status,
            action=action,
            operation_id=snapshot.config.operation_id,
            total_products=progress.total,
            scraped_products=progress.scraped,
            failed_products=progress.failed,
            progress=ProgressCounter.from_counts(progress.scraped, progress.total),
            duration=duration,
            error_message=snapshot.error_message,
            retry_count=0,
        )

        async def mirror() -> None:
            if not await self._history.update(snapshot.log_id, **history_changes):
                logger.debug(f'History record {snapshot.log_id} of session {snapshot.id} no longer exists.')
            await self._remote_log.update(snapshot.remote_log_id, log_update)

        return self._mirror_queue.submit(snapshot.id, mirror)

    def _emit(self, event: Event, snapshot: Session) -> None:
        if self._event_manager is None or not self._event_manager.active:
            return

        self._event_manager.emit(
            event=event,
            event_data=EventSessionData(
                session_id=snapshot.id,
                log_id=snapshot.log_id,
                status=snapshot.status,
                scraped=snapshot.progress.scraped,
                failed=snapshot.progress.failed,
                total=snapshot.progress.total,
                percentage=snapshot.progress.percentage,
                error_message=snapshot.error_message,
            ),
        )
