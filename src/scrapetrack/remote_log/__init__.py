from ._base import RemoteLogClient
from ._httpx import HttpxRemoteLogClient
from ._memory import MemoryRemoteLogClient
from ._models import LogEntry, LogEntryUpdate

__all__ = [
    'HttpxRemoteLogClient',
    'LogEntry',
    'LogEntryUpdate',
    'MemoryRemoteLogClient',
    'RemoteLogClient',
]
