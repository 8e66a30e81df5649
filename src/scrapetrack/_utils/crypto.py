from __future__ import annotations

import secrets
import string

_ID_ALPHABET = string.ascii_letters + string.digits

SESSION_ID_PREFIX = 'session_'


def crypto_random_object_id(length: int = 17) -> str:
    """Generate a random alphanumeric id using a cryptographically secure source."""
    return ''.join(secrets.choice(_ID_ALPHABET) for _ in range(length))


def generate_session_id() -> str:
    """Generate an id of a session or history record, e.g. `session_4fGh1Kq9ZtXw`."""
    return f'{SESSION_ID_PREFIX}{crypto_random_object_id(12)}'
