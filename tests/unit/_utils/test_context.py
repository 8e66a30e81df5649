from __future__ import annotations

import pytest

from scrapetrack._utils.context import ensure_context


class _Resource:
    def __init__(self) -> None:
        self.active = False

    @ensure_context
    def sync_method(self) -> str:
        return 'sync'

    @ensure_context
    async def async_method(self) -> str:
        return 'async'


async def test_methods_fail_outside_of_context() -> None:
    resource = _Resource()

    with pytest.raises(RuntimeError, match='_Resource is not active'):
        resource.sync_method()

    with pytest.raises(RuntimeError, match='_Resource is not active'):
        await resource.async_method()


async def test_methods_pass_when_active() -> None:
    resource = _Resource()
    resource.active = True

    assert resource.sync_method() == 'sync'
    assert await resource.async_method() == 'async'
