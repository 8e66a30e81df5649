from __future__ import annotations

from typing import Literal

from pydantic import JsonValue as JsonSerializable

__all__ = [
    'ItemOutcome',
    'ItemStatus',
    'JsonSerializable',
    'LogLevel',
    'SessionStatus',
    'SessionType',
]

LogLevel = Literal['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']

SessionStatus = Literal['pending', 'in_progress', 'completed', 'failed', 'cancelled']
"""Lifecycle status of a session and of its history record."""

TERMINAL_STATUSES: frozenset[SessionStatus] = frozenset({'completed', 'failed', 'cancelled'})

ACTIVE_STATUSES: frozenset[SessionStatus] = frozenset({'pending', 'in_progress'})

SessionType = Literal['category', 'product']

ItemOutcome = Literal['success', 'failed']
"""Result of processing a single item, as reported by the scraper."""

ItemStatus = Literal['pending', 'success', 'failed']
"""Status of a single selected item within a session."""
