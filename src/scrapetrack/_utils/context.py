from __future__ import annotations

import asyncio
from functools import wraps
from typing import Any, Callable, TypeVar

T = TypeVar('T', bound=Callable[..., Any])


def _check_active(instance: Any) -> None:
    if not getattr(instance, 'active', False):
        raise RuntimeError(
            f'The {instance.__class__.__name__} is not active. Enter it with `async with` before using it.'
        )


def ensure_context(method: T) -> T:
    """Ensure the async context manager of the instance has been entered before executing the method.

    The instance is expected to expose an `active` property. Works for both synchronous and asynchronous methods.

    Raises:
        RuntimeError: If the instance is not active.
    """

    @wraps(method)
    def sync_wrapper(self: Any, *args: Any, **kwargs: Any) -> Any:
        _check_active(self)
        return method(self, *args, **kwargs)

    @wraps(method)
    async def async_wrapper(self: Any, *args: Any, **kwargs: Any) -> Any:
        _check_active(self)
        return await method(self, *args, **kwargs)

    return async_wrapper if asyncio.iscoroutinefunction(method) else sync_wrapper  # type: ignore[return-value]
