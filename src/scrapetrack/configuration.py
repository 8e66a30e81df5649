from __future__ import annotations

from datetime import timedelta
from typing import Annotated

from pydantic import BeforeValidator, Field, PositiveInt
from pydantic_settings import BaseSettings, SettingsConfigDict

from scrapetrack._consts import DEFAULT_HISTORY_KEY, MAX_HISTORY_ITEMS
from scrapetrack._types import LogLevel
from scrapetrack._utils.docs import docs_group

__all__ = ['Configuration']


@docs_group('Configuration')
class Configuration(BaseSettings):
    """Configuration settings for scrapetrack.

    Default values are provided for all settings, so typically no adjustments are necessary. Settings can also
    be configured via environment variables, prefixed with `SCRAPETRACK_`.
    """

    model_config = SettingsConfigDict(populate_by_name=True)

    log_level: Annotated[
        LogLevel,
        Field(alias='scrapetrack_log_level'),
        BeforeValidator(lambda value: str(value).upper()),
    ] = 'INFO'
    """The logging level."""

    storage_dir: Annotated[
        str,
        Field(alias='scrapetrack_storage_dir'),
    ] = './storage'
    """The path to the directory where the file system storage client keeps its data."""

    purge_on_start: Annotated[
        bool,
        Field(alias='scrapetrack_purge_on_start'),
    ] = False
    """Whether to purge unnamed key-value stores when they are opened. Session history is meant to outlive
    the process, so this is off by default."""

    history_kvs_name: Annotated[
        str | None,
        Field(alias='scrapetrack_history_kvs_name'),
    ] = None
    """The name of the key-value store holding the session history. `None` means the default store."""

    history_key: Annotated[
        str,
        Field(alias='scrapetrack_history_key'),
    ] = DEFAULT_HISTORY_KEY
    """The key under which the session history is stored."""

    max_history_items: Annotated[
        PositiveInt,
        Field(alias='scrapetrack_max_history_items'),
    ] = MAX_HISTORY_ITEMS
    """The maximum number of history records retained. The oldest records beyond the cap are dropped."""

    remote_log_url: Annotated[
        str | None,
        Field(alias='scrapetrack_remote_log_url'),
    ] = None
    """Base URL of the remote scrape-log API. When not set, an in-process remote log is used."""

    remote_log_token: Annotated[
        str | None,
        Field(alias='scrapetrack_remote_log_token'),
    ] = None
    """Bearer token sent to the remote scrape-log API."""

    remote_log_timeout: Annotated[
        timedelta,
        Field(alias='scrapetrack_remote_log_timeout'),
    ] = timedelta(seconds=30)
    """Timeout of a single remote scrape-log API call."""
