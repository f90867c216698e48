from pydantic import BaseModel, Field


class ChatConfig(BaseModel):
    TypingTimeoutSeconds: float = Field(
        default=3.0,
        description="How long a typing indicator stays on after the last signal",
    )
    HandleStorePath: str = Field(
        default=".tsupport/session.json",
        description="Where the customer client keeps its resumable session handle",
    )
