from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Generic

from pydantic import BaseModel, ConfigDict, Field
from typing_extensions import TypeVar

from scrapetrack._utils.docs import docs_group

KvsValueType = TypeVar('KvsValueType', default=Any)


@docs_group('Data structures')
class KeyValueStoreMetadata(BaseModel):
    """Model for a key-value store metadata."""

    model_config = ConfigDict(populate_by_name=True, extra='allow')

    id: Annotated[str, Field(alias='id')]
    """The unique identifier of the store."""

    name: Annotated[str | None, Field(alias='name', default=None)]
    """The name of the store, `None` for the default store."""

    created_at: Annotated[datetime, Field(alias='createdAt')]
    """The timestamp when the store was created."""

    modified_at: Annotated[datetime, Field(alias='modifiedAt')]
    """The timestamp when the store was last modified."""


@docs_group('Data structures')
class KeyValueStoreRecordMetadata(BaseModel):
    """Model for a key-value store record metadata."""

    model_config = ConfigDict(populate_by_name=True)

    key: Annotated[str, Field(alias='key')]
    """The key of the record."""

    content_type: Annotated[str, Field(alias='contentType')]
    """The MIME type of the record."""

    size: Annotated[int | None, Field(alias='size', default=None)] = None
    """The size of the record in bytes."""


@docs_group('Data structures')
class KeyValueStoreRecord(KeyValueStoreRecordMetadata, Generic[KvsValueType]):
    """Model for a key-value store record."""

    model_config = ConfigDict(populate_by_name=True)

    value: Annotated[KvsValueType, Field(alias='value')]
    """The value of the record."""
