from __future__ import annotations

METADATA_FILENAME = '__metadata__.json'
"""The name of the metadata file for storage clients."""

DEFAULT_HISTORY_KEY = 'scraping_history'
"""The key-value store key holding the serialized session history."""

MAX_HISTORY_ITEMS = 1000
"""Default capacity of the session history."""

DEFAULT_CANCEL_REASON = 'cancelled by caller'
