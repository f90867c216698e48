from sqlmodel import col, select
from sqlmodel.ext.asyncio.session import AsyncSession

from tsupport.models.agent import Agent


class AgentRepository:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get_by_id(self, agent_id: str) -> Agent | None:
        return await self.db.get(Agent, agent_id)

    async def list_all(self) -> list[Agent]:
        result = await self.db.exec(select(Agent).order_by(col(Agent.name)))
        return list(result.all())

    async def create(self, agent: Agent) -> Agent:
        self.db.add(agent)
        await self.db.flush()
        await self.db.refresh(agent)
        return agent
