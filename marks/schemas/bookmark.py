from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class Bookmark(BaseModel):
    """A stored bookmark. Immutable once the gateway has created it."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    owner_id: str = Field(alias="user_id")
    url: str
    title: str
    created_at: datetime

    def to_wire(self) -> dict[str, Any]:
        """JSON-safe row shape (``user_id`` key) used by the API and the feed."""
        return self.model_dump(mode="json", by_alias=True)


class BookmarkCreate(BaseModel):
    """Request body for creating a bookmark."""
    url: str
    title: str


class FeedEvent(BaseModel):
    """One change-feed event: full row for inserts, at least the id for deletes."""

    kind: Literal["insert", "delete"]
    record: dict[str, Any]

    @field_validator("record")
    @classmethod
    def _record_has_id(cls, v: dict[str, Any]) -> dict[str, Any]:
        if not v.get("id"):
            raise ValueError("feed record must carry an id")
        return v

    @model_validator(mode="after")
    def _insert_carries_row(self) -> "FeedEvent":
        if self.kind == "insert":
            # fail early on partial insert payloads
            Bookmark.model_validate(self.record)
        return self

    @property
    def record_id(self) -> str:
        return str(self.record["id"])

    def bookmark(self) -> Bookmark:
        if self.kind != "insert":
            raise ValueError("delete events carry no full bookmark")
        return Bookmark.model_validate(self.record)

    @classmethod
    def inserted(cls, bookmark: Bookmark) -> "FeedEvent":
        return cls(kind="insert", record=bookmark.to_wire())

    @classmethod
    def deleted(cls, bookmark_id: str) -> "FeedEvent":
        return cls(kind="delete", record={"id": bookmark_id})
