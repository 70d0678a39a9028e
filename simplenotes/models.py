from __future__ import annotations
from datetime import datetime, UTC
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator
from sqlmodel import Field as SQLField, SQLModel

from .config import UNTITLED


def utcnow() -> datetime:
    return datetime.now(UTC)


class Note(BaseModel):
    """A single note. Frozen: the store replaces notes, it never mutates them."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    title: str = ""
    content: str = ""
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")
    pinned: bool = False
    color: Optional[str] = None

    @field_validator("title", "content", mode="before")
    @classmethod
    def _null_text(cls, value):
        return "" if value is None else value

    @field_validator("pinned", mode="before")
    @classmethod
    def _null_flag(cls, value):
        return False if value is None else value

    @field_validator("created_at", "updated_at")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        # snapshots written without an offset are treated as UTC
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value

    @property
    def display_title(self) -> str:
        title = self.title.strip()
        return title if title else UNTITLED

    def to_record(self) -> dict:
        """JSON-ready dict using the camelCase keys of the durable slot."""
        return self.model_dump(mode="json", by_alias=True)


class Slot(SQLModel, table=True):
    """One named entry of the key-value store."""

    key: str = SQLField(primary_key=True)
    value: str = ""
    updated_at: datetime = SQLField(default_factory=utcnow)
