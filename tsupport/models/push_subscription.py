"""Web Push subscription model."""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import TIMESTAMP, Index
from sqlmodel import Column, Field, SQLModel

from ._time import utcnow


class PushSubscription(SQLModel, table=True):
    """Browser Push API subscription, owned by an agent or by a customer (never both)."""

    __tablename__ = "push_subscriptions"  # type: ignore
    __table_args__ = (Index("idx_push_sub_endpoint", "endpoint", unique=True),)

    id: UUID = Field(default_factory=uuid4, primary_key=True, index=True)
    user_id: str | None = Field(default=None, index=True, description="Authenticated agent id")
    customer_id: str | None = Field(default=None, index=True, description="Customer id")
    endpoint: str = Field(description="Browser Push Service URL")
    keys_p256dh: str = Field(description="P-256 ECDH public key")
    keys_auth: str = Field(description="Authentication secret")
    user_agent: str = Field(default="", description="Optional device identifier")
    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(TIMESTAMP(timezone=True), nullable=False),
    )

    @property
    def owner(self) -> str:
        return self.user_id or self.customer_id or ""

    def subscription_info(self) -> dict[str, str | dict[str, str]]:
        return {
            "endpoint": self.endpoint,
            "keys": {"p256dh": self.keys_p256dh, "auth": self.keys_auth},
        }
