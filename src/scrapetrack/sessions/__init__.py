from ._models import ItemSelection, Progress, Session, SessionConfig, SessionItem
from ._session_registry import SessionRegistry

__all__ = [
    'ItemSelection',
    'Progress',
    'Session',
    'SessionConfig',
    'SessionItem',
    'SessionRegistry',
]
