import logging

from fastapi import APIRouter, Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel.ext.asyncio.session import AsyncSession

from tsupport.api.deps import get_current_agent
from tsupport.common.code import ErrCode, handle_auth_error
from tsupport.infra.database import get_session
from tsupport.models.agent import AgentRead
from tsupport.repos.agent import AgentRepository

logger = logging.getLogger(__name__)

router = APIRouter(tags=["agents"])


@router.get("", response_model=list[AgentRead])
async def list_agents(
    _agent_id: str = Depends(get_current_agent),
    db: AsyncSession = Depends(get_session),
) -> list[AgentRead]:
    """Agent profiles for the dashboard roster, by name."""
    try:
        agents = await AgentRepository(db).list_all()
    except SQLAlchemyError as e:
        logger.error("Failed to list agents: %s", e)
        raise handle_auth_error(ErrCode.SERVICE_UNAVAILABLE.with_messages("Could not load agents, please retry"))
    return [AgentRead.model_validate(agent) for agent in agents]
