from importlib import metadata

from .configuration import Configuration
from .errors import (
    ImportFormatError,
    PersistenceError,
    RemoteLogError,
    ScrapeTrackError,
    SessionNotFoundError,
    ValidationError,
)
from .history import HistoryRecord, HistoryStore, StatisticsSnapshot
from .sessions import ItemSelection, Progress, Session, SessionConfig, SessionRegistry

__version__ = metadata.version('scrapetrack')

__all__ = [
    'Configuration',
    'HistoryRecord',
    'HistoryStore',
    'ImportFormatError',
    'ItemSelection',
    'PersistenceError',
    'Progress',
    'RemoteLogError',
    'ScrapeTrackError',
    'Session',
    'SessionConfig',
    'SessionNotFoundError',
    'SessionRegistry',
    'StatisticsSnapshot',
    'ValidationError',
]
