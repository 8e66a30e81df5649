from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, NonNegativeInt

from scrapetrack._types import SessionStatus, SessionType
from scrapetrack._utils.docs import docs_group
from scrapetrack._utils.models import timedelta_ms
from scrapetrack._utils.time import utc_now
from scrapetrack.history import ProgressCounter


class _LogEntryBase(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    operation_id: Annotated[str | None, Field(alias='operationId')] = None
    total_products: Annotated[NonNegativeInt | None, Field(alias='totalProducts')] = None
    scraped_products: Annotated[NonNegativeInt | None, Field(alias='scrapedProducts')] = None
    failed_products: Annotated[NonNegativeInt | None, Field(alias='failedProducts')] = None
    progress: Annotated[ProgressCounter | None, Field(alias='progress')] = None
    duration: Annotated[timedelta_ms | None, Field(alias='duration')] = None
    error_message: Annotated[str | None, Field(alias='errorMessage')] = None
    retry_count: Annotated[NonNegativeInt | None, Field(alias='retryCount')] = None

    def to_payload(self) -> dict[str, Any]:
        """Serialize the entry to the JSON body sent to the API, camelCase keys and unset fields left out."""
        return self.model_dump(mode='json', by_alias=True, exclude_none=True)


@docs_group('Data structures')
class LogEntry(_LogEntryBase):
    """A scrape log entry as created in the remote log API."""

    when: Annotated[datetime, Field(alias='when', default_factory=utc_now)]
    platform: Annotated[str, Field(alias='platform')]
    type: Annotated[SessionType, Field(alias='type')] = 'category'
    url: Annotated[str, Field(alias='url')] = ''
    category: Annotated[str | None, Field(alias='category')] = None
    status: Annotated[SessionStatus, Field(alias='status')] = 'pending'
    action: Annotated[str, Field(alias='action')] = 'start_category_scraping'


@docs_group('Data structures')
class LogEntryUpdate(_LogEntryBase):
    """A partial update of a scrape log entry. Fields left as `None` are not sent."""

    when: Annotated[datetime | None, Field(alias='when')] = None
    platform: Annotated[str | None, Field(alias='platform')] = None
    type: Annotated[SessionType | None, Field(alias='type')] = None
    url: Annotated[str | None, Field(alias='url')] = None
    category: Annotated[str | None, Field(alias='category')] = None
    status: Annotated[SessionStatus | None, Field(alias='status')] = None
    action: Annotated[str | None, Field(alias='action')] = None
