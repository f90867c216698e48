from pydantic import BaseModel, Field


class AccessConfig(BaseModel):
    """Static customer allow-list checked before the ``allowed_users`` table."""

    StaticIds: list[str] = Field(default_factory=list, description="Customer ids always allowed")
    StaticIdsFile: str = Field(
        default="",
        description="Optional JSON file holding an array of allowed customer ids",
    )
