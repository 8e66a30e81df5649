from ._event_manager import EventManager
from ._types import Event, EventData, EventListener, EventSessionData

__all__ = [
    'Event',
    'EventData',
    'EventListener',
    'EventManager',
    'EventSessionData',
]
