from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import TIMESTAMP
from sqlmodel import Column, Field, SQLModel

from ._time import utcnow


class AllowedUser(SQLModel, table=True):
    """Customer identifier permitted to open a chat."""

    __tablename__ = "allowed_users"  # type: ignore

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    customer_id: str = Field(unique=True, index=True)
    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(TIMESTAMP(timezone=True), nullable=False),
    )
