from sqlmodel import Field, SQLModel


class Agent(SQLModel, table=True):
    __tablename__ = "agents"  # type: ignore

    id: str = Field(primary_key=True, description="Principal id forwarded by the auth gateway")
    name: str
    avatar_url: str | None = Field(default=None)


class AgentRead(SQLModel):
    id: str
    name: str
    avatar_url: str | None = None
