from __future__ import annotations

from datetime import timedelta
from logging import getLogger
from typing import TYPE_CHECKING, Any

import httpx
from typing_extensions import override

from scrapetrack._utils.docs import docs_group
from scrapetrack.errors import RemoteLogError

from ._base import RemoteLogClient

if TYPE_CHECKING:
    from scrapetrack.configuration import Configuration

    from ._models import LogEntry, LogEntryUpdate

logger = getLogger(__name__)

_SCRAPE_LOGS_PATH = '/scrape-logs'


def _error_detail(response: httpx.Response) -> str:
    """Extract the error message the API put into the response body, falling back to the reason phrase."""
    try:
        body = response.json()
    except ValueError:
        body = None

    if isinstance(body, dict) and isinstance(body.get('message'), str):
        return body['message']

    return response.reason_phrase or 'unknown error'


def _is_method_not_allowed(response: httpx.Response) -> bool:
    # Some deployments answer an unsupported PATCH with a 404 "Cannot PATCH /scrape-logs/..." page
    return response.status_code == httpx.codes.METHOD_NOT_ALLOWED or 'Cannot PATCH' in response.text


@docs_group('Remote log clients')
class HttpxRemoteLogClient(RemoteLogClient):
    """Remote log client talking to the scrape-log REST API, based on the `HTTPX` library.

    Entries are created with `POST /scrape-logs` and the id is read from `data._id` of the response. Updates are
    sent with `PATCH /scrape-logs/{id}`, falling back to `PUT` when the server does not accept `PATCH`.
    No retries are made, a failed call raises `RemoteLogError`.

    ### Usage

    ```python
    from scrapetrack.remote_log import HttpxRemoteLogClient, LogEntry

    async with HttpxRemoteLogClient('https://api.example.com', token='...') as remote_log:
        log_id = await remote_log.create(LogEntry(platform='flipkart', url='https://...'))
    ```
    """

    def __init__(
        self,
        base_url: str,
        *,
        token: str | None = None,
        timeout: timedelta = timedelta(seconds=30),
        **async_client_kwargs: Any,
    ) -> None:
        """Initialize a new instance.

        Args:
            base_url: Base URL of the API, e.g. `https://api.example.com/api`.
            token: Optional bearer token sent with every request.
            timeout: Timeout of a single request.
            async_client_kwargs: Additional keyword arguments for `httpx.AsyncClient`.
        """
        headers = {'Content-Type': 'application/json'}
        if token:
            headers['Authorization'] = f'Bearer {token}'

        kwargs: dict[str, Any] = {
            'base_url': base_url,
            'headers': headers,
            'timeout': timeout.total_seconds(),
        }
        kwargs.update(async_client_kwargs)

        self._client = httpx.AsyncClient(**kwargs)

    @classmethod
    def from_config(cls, configuration: Configuration, **async_client_kwargs: Any) -> HttpxRemoteLogClient:
        """Create a client from the `remote_log_*` settings of the configuration.

        Raises:
            ValueError: If `remote_log_url` is not configured.
        """
        if not configuration.remote_log_url:
            raise ValueError('The remote log URL is not configured (SCRAPETRACK_REMOTE_LOG_URL).')

        return cls(
            configuration.remote_log_url,
            token=configuration.remote_log_token,
            timeout=configuration.remote_log_timeout,
            **async_client_kwargs,
        )

    @override
    async def create(self, entry: LogEntry) -> str:
        response = await self._send('POST', _SCRAPE_LOGS_PATH, entry.to_payload())

        if response.is_error:
            raise RemoteLogError(
                f'Failed to create scrape log: {_error_detail(response)}',
                status_code=response.status_code,
            )

        try:
            body = response.json()
        except ValueError as exc:
            raise RemoteLogError('Failed to create scrape log: response is not JSON') from exc

        data = body.get('data') if isinstance(body, dict) else None
        log_id = (data.get('_id') or data.get('id')) if isinstance(data, dict) else None

        if not log_id:
            raise RemoteLogError('Failed to create scrape log: response carries no entry id')

        return str(log_id)

    @override
    async def update(self, log_id: str, entry: LogEntryUpdate) -> None:
        path = f'{_SCRAPE_LOGS_PATH}/{log_id}'
        payload = entry.to_payload()

        response = await self._send('PATCH', path, payload)

        if response.is_error and _is_method_not_allowed(response):
            logger.debug(f'PATCH of scrape log {log_id} not accepted, retrying with PUT.')
            response = await self._send('PUT', path, payload)

        if response.is_error:
            raise RemoteLogError(
                f'Failed to update scrape log {log_id}: {_error_detail(response)}',
                status_code=response.status_code,
            )

    @override
    async def aclose(self) -> None:
        await self._client.aclose()

    async def _send(self, method: str, path: str, payload: dict[str, Any]) -> httpx.Response:
        try:
            return await self._client.request(method, path, json=payload)
        except httpx.HTTPError as exc:
            raise RemoteLogError(f'{method} {path} failed: {exc!r}') from exc
