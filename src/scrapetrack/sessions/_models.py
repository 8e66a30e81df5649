from __future__ import annotations

from datetime import datetime, timedelta
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, NonNegativeInt, computed_field, model_validator
from typing_extensions import Self

from scrapetrack._types import ItemStatus, SessionStatus
from scrapetrack._utils.docs import docs_group
from scrapetrack._utils.math import compute_percentage


@docs_group('Data structures')
class ItemSelection(BaseModel):
    """An item offered for scraping. Only items with `selected` set become part of a session."""

    model_config = ConfigDict(populate_by_name=True)

    url: Annotated[str, Field(alias='url')]
    title: Annotated[str, Field(alias='title')] = ''
    selected: Annotated[bool, Field(alias='selected')] = True


@docs_group('Data structures')
class SessionConfig(BaseModel):
    """Configuration of a session to be started."""

    model_config = ConfigDict(populate_by_name=True)

    platform: Annotated[str, Field(alias='platform')]
    """Name of the scraped platform, e.g. `flipkart`."""

    category: Annotated[str | None, Field(alias='category')] = None
    """Human readable category label."""

    category_url: Annotated[str, Field(alias='categoryUrl')] = ''
    operation_id: Annotated[str | None, Field(alias='operationId')] = None
    items: Annotated[list[ItemSelection], Field(alias='selectedProducts')] = []

    @property
    def selected_items(self) -> list[ItemSelection]:
        return [item for item in self.items if item.selected]


@docs_group('Data structures')
class SessionItem(BaseModel):
    """A selected item of a running session and its outcome."""

    model_config = ConfigDict(populate_by_name=True)

    url: Annotated[str, Field(alias='url')]
    title: Annotated[str, Field(alias='title')] = ''
    status: Annotated[ItemStatus, Field(alias='status')] = 'pending'
    error_message: Annotated[str | None, Field(alias='errorMessage')] = None


@docs_group('Data structures')
class Progress(BaseModel):
    """Progress counters of a session. The percentage is always derived from `scraped` and `total`."""

    model_config = ConfigDict(populate_by_name=True)

    scraped: Annotated[NonNegativeInt, Field(alias='scraped')] = 0
    failed: Annotated[NonNegativeInt, Field(alias='failed')] = 0
    total: Annotated[NonNegativeInt, Field(alias='total')] = 0

    @model_validator(mode='after')
    def _check_counts(self) -> Self:
        if self.scraped + self.failed > self.total:
            raise ValueError(f'scraped ({self.scraped}) + failed ({self.failed}) exceeds total ({self.total})')
        return self

    @computed_field(alias='percentage')  # type: ignore[prop-decorator]
    @property
    def percentage(self) -> int:
        return compute_percentage(self.scraped, self.total)

    @property
    def processed(self) -> int:
        return self.scraped + self.failed

    @property
    def is_finished(self) -> bool:
        return self.processed == self.total


@docs_group('Data structures')
class Session(BaseModel):
    """Live state of a session tracked by the `SessionRegistry`."""

    model_config = ConfigDict(populate_by_name=True)

    id: Annotated[str, Field(alias='id')]
    log_id: Annotated[str, Field(alias='logId')]
    """Id of the history record of the session."""

    remote_log_id: Annotated[str, Field(alias='remoteLogId')]
    """Id of the entry in the remote scrape log."""

    config: Annotated[SessionConfig, Field(alias='config')]
    items: Annotated[list[SessionItem], Field(alias='items')]
    status: Annotated[SessionStatus, Field(alias='status')] = 'pending'
    progress: Annotated[Progress, Field(alias='progress')]
    started_at: Annotated[datetime, Field(alias='startedAt')]
    completed_at: Annotated[datetime | None, Field(alias='completedAt')] = None
    error_message: Annotated[str | None, Field(alias='errorMessage')] = None

    def duration(self, now: datetime) -> timedelta:
        """Time elapsed since the start, up to `completed_at` for finished sessions and up to `now` otherwise."""
        end = self.completed_at or now
        return max(end - self.started_at, timedelta(0))
