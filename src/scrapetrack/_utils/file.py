from __future__ import annotations

import asyncio
import json
import os
import sys
import tempfile
from pathlib import Path
from typing import Any

if sys.platform == 'win32':

    def _write_file(path: Path, data: str | bytes) -> None:
        """Write directly to the file, temporary files are problematic due to permissions on Windows."""
        if isinstance(data, bytes):
            path.write_bytes(data)
        else:
            path.write_text(data, encoding='utf-8')
else:

    def _write_file(path: Path, data: str | bytes) -> None:
        """Write through a temporary file in the same directory and atomically replace the destination."""
        fd, tmp_path = tempfile.mkstemp(
            suffix=f'{path.suffix}.tmp',
            prefix=f'{path.name}.',
            dir=str(path.parent),
        )

        try:
            if isinstance(data, bytes):
                with os.fdopen(fd, 'wb') as tmp_file:
                    tmp_file.write(data)
            else:
                with os.fdopen(fd, 'w', encoding='utf-8') as tmp_file:
                    tmp_file.write(data)

            Path(tmp_path).replace(path)
        except Exception:
            Path(tmp_path).unlink(missing_ok=True)
            raise


def infer_mime_type(value: Any) -> str:
    """Infer the MIME content type from the value.

    Args:
        value: The value to infer the content type from.

    Returns:
        The inferred MIME content type.
    """
    if isinstance(value, (bytes, bytearray)):
        return 'application/octet-stream'

    if isinstance(value, (dict, list)):
        return 'application/json; charset=utf-8'

    if isinstance(value, (str, int, float, bool)):
        return 'text/plain; charset=utf-8'

    return 'application/octet-stream'


async def json_dumps(obj: Any) -> str:
    """Serialize an object to a JSON-formatted string without blocking the event loop.

    Args:
        obj: The object to serialize.

    Returns:
        A string containing the JSON representation of the input object.
    """
    return await asyncio.to_thread(json.dumps, obj, ensure_ascii=False, indent=2, default=str)


async def atomic_write(path: Path, data: str | bytes, *, retry_count: int = 0) -> None:
    """Write data to a file atomically to prevent partial writes.

    Text and binary data are both supported, the mode is picked from the data type.

    Args:
        path: The path to the destination file.
        data: The data to write to the file.
        retry_count: Internal parameter to track the number of retry attempts.
    """
    max_retries = 3

    try:
        await asyncio.to_thread(_write_file, path, data)
    except (FileNotFoundError, PermissionError):
        if retry_count < max_retries:
            return await atomic_write(path, data, retry_count=retry_count + 1)
        raise
