from datetime import datetime
from enum import StrEnum
from uuid import UUID, uuid4

from pydantic import field_validator
from sqlalchemy import TIMESTAMP
from sqlmodel import Column, Field, SQLModel

from ._time import ensure_utc, utcnow


class SenderRole(StrEnum):
    AGENT = "agent"
    CUSTOMER = "customer"
    SYSTEM = "system"

    @property
    def counterpart(self) -> "SenderRole | None":
        """The party that should be notified about a message from this role."""
        if self is SenderRole.AGENT:
            return SenderRole.CUSTOMER
        if self is SenderRole.CUSTOMER:
            return SenderRole.AGENT
        return None


class AttachmentType(StrEnum):
    IMAGE = "image"
    FILE = "file"

    @classmethod
    def from_content_type(cls, content_type: str | None) -> "AttachmentType":
        if content_type and content_type.startswith("image/"):
            return cls.IMAGE
        return cls.FILE


class Message(SQLModel, table=True):
    """One immutable entry in a chat's log. Rows are inserted, never updated."""

    __tablename__ = "messages"  # type: ignore

    id: UUID = Field(default_factory=uuid4, primary_key=True, index=True)
    chat_id: UUID = Field(index=True, description="Logical chat reference (no FK)")
    content: str = Field(default="")
    sender_role: SenderRole
    attachment_url: str | None = Field(default=None)
    attachment_type: AttachmentType | None = Field(default=None)
    attachment_name: str | None = Field(default=None)
    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(TIMESTAMP(timezone=True), nullable=False, index=True),
    )


class MessageCreate(SQLModel):
    chat_id: UUID
    content: str
    sender_role: SenderRole
    attachment_url: str | None = None
    attachment_type: AttachmentType | None = None
    attachment_name: str | None = None


class MessageRead(SQLModel):
    id: UUID
    chat_id: UUID
    content: str
    sender_role: SenderRole
    attachment_url: str | None = None
    attachment_type: AttachmentType | None = None
    attachment_name: str | None = None
    created_at: datetime

    @field_validator("created_at")
    @classmethod
    def _utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)
