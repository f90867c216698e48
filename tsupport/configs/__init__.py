from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .access import AccessConfig
from .attachments import AttachmentsConfig
from .chat import ChatConfig
from .database import DatabaseConfig
from .push import PushConfig
from .redis import RedisConfig


class AppConfig(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="TSUPPORT_",
        env_nested_delimiter="_",
        case_sensitive=False,
        extra="ignore",
    )

    Title: str = Field(default="tsupport", description="Application title")
    Host: str = Field(default="0.0.0.0", description="Bind host")
    Port: int = Field(default=8000, description="Bind port")
    Debug: bool = Field(default=False, description="Debug mode")
    LogLevel: str = Field(default="INFO", description="Root log level")

    Database: DatabaseConfig = Field(default_factory=lambda: DatabaseConfig(), description="Database configuration")
    Redis: RedisConfig = Field(default_factory=lambda: RedisConfig(), description="Redis configuration")
    Push: PushConfig = Field(default_factory=lambda: PushConfig(), description="Web Push configuration")
    Access: AccessConfig = Field(default_factory=lambda: AccessConfig(), description="Customer allow-list")
    Attachments: AttachmentsConfig = Field(
        default_factory=lambda: AttachmentsConfig(),
        description="Attachment storage",
    )
    Chat: ChatConfig = Field(default_factory=lambda: ChatConfig(), description="Chat behaviour")


configs = AppConfig()

__all__ = ["AppConfig", "configs"]
