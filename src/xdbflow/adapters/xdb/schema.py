"""Pydantic models describing the xDB HTTP payloads."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

ErrorCode = Literal["conflict", "validation", "not_found", "transient"]


def _blank_to_none(value: object) -> object:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


def _assume_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class XdbBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class KeyPayload(XdbBaseModel):
    source: str
    identifier: str


class InteractionPayload(XdbBaseModel):
    id: UUID | None = None
    timestamp: datetime = Field(alias="startDateTime")
    channel_id: UUID = Field(alias="channelId")
    event_id: UUID = Field(alias="eventId")
    user_agent: str = Field(default="", alias="userAgent")
    facets: dict[str, dict[str, object]] = Field(default_factory=dict)

    @field_validator("timestamp", mode="after")
    @classmethod
    def normalize_timestamp(cls, value: datetime | None) -> datetime | None:
        return _assume_utc(value)


class EntityPayload(XdbBaseModel):
    id: UUID
    identifiers: list[KeyPayload] = Field(default_factory=list)
    facets: dict[str, dict[str, object]] = Field(default_factory=dict)
    interactions: list[InteractionPayload] = Field(default_factory=list)


class EntityListResponse(XdbBaseModel):
    items: list[EntityPayload]


class ErrorPayload(XdbBaseModel):
    code: ErrorCode | str
    message: str = ""


class ErrorResponse(XdbBaseModel):
    error: ErrorPayload


class ItemResultPayload(XdbBaseModel):
    id: UUID | None = None
    error: ErrorPayload | None = None


class BatchResponse(XdbBaseModel):
    results: list[ItemResultPayload]


class IndexHitPayload(XdbBaseModel):
    entity_id: str | None = Field(default=None, alias="entityId")
    interaction_id: str | None = Field(default=None, alias="interactionId")
    timestamp: datetime | None = None

    @field_validator("entity_id", "interaction_id", mode="before")
    @classmethod
    def stringify_identifier(cls, value: object) -> object:
        if value is None or isinstance(value, str):
            return _blank_to_none(value)
        return str(value)

    @field_validator("timestamp", mode="after")
    @classmethod
    def normalize_timestamp(cls, value: datetime | None) -> datetime | None:
        return _assume_utc(value)


class SearchResponse(XdbBaseModel):
    hits: list[IndexHitPayload]


class ExpandedInteractionResponse(XdbBaseModel):
    entity: EntityPayload
    interaction: InteractionPayload


class DefinitionPayload(XdbBaseModel):
    id: UUID | None = None
    type_name: str = Field(alias="typeName")
    key: str
    display_name: str = Field(alias="displayName")
    culture: str = "en"
