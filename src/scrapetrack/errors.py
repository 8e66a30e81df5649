from __future__ import annotations

from scrapetrack._utils.docs import docs_group

__all__ = [
    'ImportFormatError',
    'PersistenceError',
    'RemoteLogError',
    'ScrapeTrackError',
    'SessionNotFoundError',
    'ValidationError',
]


@docs_group('Errors')
class ScrapeTrackError(Exception):
    """Base class for all errors raised by scrapetrack."""


@docs_group('Errors')
class ValidationError(ScrapeTrackError, ValueError):
    """Raised when a session operation receives malformed input, e.g. a start configuration with no selected item.

    The input is rejected before any state is mutated.
    """


@docs_group('Errors')
class SessionNotFoundError(ScrapeTrackError, LookupError):
    """Raised when an operation references an unknown session, or one that already finished and was evicted."""

    def __init__(self, session_id: str) -> None:
        super().__init__(f'Session "{session_id}" not found among active sessions.')
        self.session_id = session_id


@docs_group('Errors')
class RemoteLogError(ScrapeTrackError):
    """Raised when a call to the remote scrape-log API fails.

    For updates, the local state has already advanced when this error is raised.
    """

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        if status_code is not None:
            message = f'{message} (status code: {status_code})'
        super().__init__(message)
        self.status_code = status_code


@docs_group('Errors')
class PersistenceError(ScrapeTrackError):
    """Raised by the storage layer when a value cannot be read or written.

    The history store catches and logs it, it never reaches callers of the history store.
    """


@docs_group('Errors')
class ImportFormatError(ScrapeTrackError):
    """Raised when an imported history blob is not a JSON array of history records."""
