from pydantic import BaseModel, Field


class RedisConfig(BaseModel):
    """Redis connection used for the change feed, presence topics and the Celery broker."""

    HOST: str = Field(default="redis", description="Redis host")
    PORT: int = Field(default=6379, description="Redis port")
    DB: int = Field(default=0, description="Redis database index")
    PASSWORD: str = Field(default="", description="Redis password (empty for none)")

    @property
    def REDIS_URL(self) -> str:
        auth = f":{self.PASSWORD}@" if self.PASSWORD else ""
        return f"redis://{auth}{self.HOST}:{self.PORT}/{self.DB}"
