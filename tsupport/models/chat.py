from datetime import datetime
from enum import StrEnum
from uuid import UUID, uuid4

from pydantic import field_validator
from sqlalchemy import TIMESTAMP
from sqlmodel import Column, Field, SQLModel

from ._time import ensure_utc, utcnow


class ChatStatus(StrEnum):
    ACTIVE = "active"
    CLOSED = "closed"


class Chat(SQLModel, table=True):
    """One customer-support conversation and its metadata."""

    __tablename__ = "chats"  # type: ignore

    id: UUID = Field(default_factory=uuid4, primary_key=True, index=True)
    customer_id: str = Field(index=True, description="Allow-listed customer identifier")
    subject: str = Field(default="")
    customer_name: str = Field(default="", description="Display name or email entered by the customer")
    status: ChatStatus = Field(default=ChatStatus.ACTIVE, index=True)
    # Name snapshot taken at assignment time, not a reference to agents.id
    agent_name: str | None = Field(default=None)
    rating: int | None = Field(default=None, description="1-5, only once the chat is closed")
    review_comment: str | None = Field(default=None)
    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(TIMESTAMP(timezone=True), nullable=False, index=True),
    )


class ChatCreate(SQLModel):
    customer_id: str = Field(min_length=1)
    subject: str = Field(min_length=1)
    customer_name: str = Field(min_length=1)


class ChatRead(SQLModel):
    id: UUID
    customer_id: str
    subject: str
    customer_name: str
    status: ChatStatus
    agent_name: str | None = None
    rating: int | None = None
    review_comment: str | None = None
    created_at: datetime

    @field_validator("created_at")
    @classmethod
    def _utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)
