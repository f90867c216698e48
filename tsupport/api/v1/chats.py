"""Chat REST endpoints for customers and agents.

Agents are identified by the ``X-Agent-Id`` header; requests without it act
as the chat's customer.
"""

from uuid import UUID

from fastapi import APIRouter, Body, Depends, File, Form, UploadFile, status
from pydantic import BaseModel, Field
from sqlmodel.ext.asyncio.session import AsyncSession

from tsupport.api.deps import get_current_agent, get_lifecycle, get_message_service, get_optional_agent
from tsupport.common.code import ErrCode, ErrCodeError, handle_auth_error
from tsupport.core.chat import MessageService, RatingOutcome, SessionLifecycleManager
from tsupport.core.chat.constants import DEFAULT_AGENT_NAME
from tsupport.infra.database import get_session
from tsupport.models.chat import ChatRead, ChatStatus
from tsupport.models.message import MessageRead, SenderRole
from tsupport.repos.agent import AgentRepository

router = APIRouter(tags=["chats"])


# --- Request / Response models -----------------------------------------------


class ChatStartRequest(BaseModel):
    customer_id: str
    subject: str
    display_name: str


class MessageSendRequest(BaseModel):
    content: str
    role: SenderRole | None = Field(default=None, description="Defaults to agent when X-Agent-Id is set")


class AssignRequest(BaseModel):
    agent_name: str | None = Field(default=None, description="Overrides the name on the agent profile")


class RatingRequest(BaseModel):
    rating: int
    review: str | None = None


class RatingResponse(BaseModel):
    outcome: RatingOutcome


# --- Helpers -----------------------------------------------------------------


def _resolve_role(role: SenderRole | None, agent_id: str | None) -> SenderRole:
    if role is None:
        return SenderRole.AGENT if agent_id is not None else SenderRole.CUSTOMER
    if role is SenderRole.SYSTEM:
        raise handle_auth_error(ErrCode.INVALID_REQUEST.with_messages("System messages cannot be sent directly"))
    if role is SenderRole.AGENT and agent_id is None:
        raise handle_auth_error(ErrCode.AUTHENTICATION_REQUIRED.with_messages("Agent authentication required"))
    return role


async def _agent_name(db: AsyncSession, agent_id: str, override: str | None = None) -> str:
    if override and override.strip():
        return override.strip()
    agent = await AgentRepository(db).get_by_id(agent_id)
    return agent.name if agent is not None and agent.name else DEFAULT_AGENT_NAME


# --- Chats -------------------------------------------------------------------


@router.post("", response_model=ChatRead, status_code=status.HTTP_201_CREATED)
async def start_chat(
    body: ChatStartRequest,
    lifecycle: SessionLifecycleManager = Depends(get_lifecycle),
) -> ChatRead:
    try:
        return await lifecycle.create_chat(body.customer_id, body.subject, body.display_name)
    except ErrCodeError as e:
        raise handle_auth_error(e)


@router.get("", response_model=list[ChatRead])
async def list_chats(
    status: ChatStatus | None = None,
    _agent_id: str = Depends(get_current_agent),
    lifecycle: SessionLifecycleManager = Depends(get_lifecycle),
) -> list[ChatRead]:
    """Agent dashboard listing, newest first."""
    try:
        return await lifecycle.list_chats(status)
    except ErrCodeError as e:
        raise handle_auth_error(e)


@router.get("/{chat_id}", response_model=ChatRead)
async def get_chat(
    chat_id: UUID,
    lifecycle: SessionLifecycleManager = Depends(get_lifecycle),
) -> ChatRead:
    try:
        return await lifecycle.get_chat(chat_id)
    except ErrCodeError as e:
        raise handle_auth_error(e)


# --- Messages ----------------------------------------------------------------


@router.get("/{chat_id}/messages", response_model=list[MessageRead])
async def list_messages(
    chat_id: UUID,
    messages: MessageService = Depends(get_message_service),
) -> list[MessageRead]:
    try:
        return await messages.list_messages(chat_id)
    except ErrCodeError as e:
        raise handle_auth_error(e)


@router.post("/{chat_id}/messages", response_model=MessageRead, status_code=status.HTTP_201_CREATED)
async def send_message(
    chat_id: UUID,
    body: MessageSendRequest,
    agent_id: str | None = Depends(get_optional_agent),
    messages: MessageService = Depends(get_message_service),
) -> MessageRead:
    role = _resolve_role(body.role, agent_id)
    try:
        return await messages.send(chat_id, role, body.content)
    except ErrCodeError as e:
        raise handle_auth_error(e)


@router.post("/{chat_id}/attachments", response_model=MessageRead, status_code=status.HTTP_201_CREATED)
async def send_attachment(
    chat_id: UUID,
    file: UploadFile = File(...),
    role: SenderRole | None = Form(default=None),
    agent_id: str | None = Depends(get_optional_agent),
    messages: MessageService = Depends(get_message_service),
) -> MessageRead:
    role = _resolve_role(role, agent_id)
    data = await file.read()
    try:
        return await messages.send_attachment(chat_id, role, file.filename or "file", data, file.content_type)
    except ErrCodeError as e:
        raise handle_auth_error(e)


# --- Lifecycle ---------------------------------------------------------------


@router.post("/{chat_id}/assign", response_model=ChatRead)
async def assign_agent(
    chat_id: UUID,
    body: AssignRequest | None = Body(default=None),
    agent_id: str = Depends(get_current_agent),
    db: AsyncSession = Depends(get_session),
    lifecycle: SessionLifecycleManager = Depends(get_lifecycle),
) -> ChatRead:
    name = await _agent_name(db, agent_id, body.agent_name if body else None)
    try:
        return await lifecycle.assign_agent(chat_id, name)
    except ErrCodeError as e:
        raise handle_auth_error(e)


@router.post("/{chat_id}/leave", response_model=ChatRead)
async def leave_chat(
    chat_id: UUID,
    agent_id: str = Depends(get_current_agent),
    db: AsyncSession = Depends(get_session),
    lifecycle: SessionLifecycleManager = Depends(get_lifecycle),
) -> ChatRead:
    name = await _agent_name(db, agent_id)
    try:
        return await lifecycle.leave_chat(chat_id, name)
    except ErrCodeError as e:
        raise handle_auth_error(e)


@router.post("/{chat_id}/close", response_model=ChatRead)
async def close_chat(
    chat_id: UUID,
    agent_id: str | None = Depends(get_optional_agent),
    lifecycle: SessionLifecycleManager = Depends(get_lifecycle),
) -> ChatRead:
    closed_by = SenderRole.AGENT if agent_id is not None else SenderRole.CUSTOMER
    try:
        return await lifecycle.close_chat(chat_id, closed_by)
    except ErrCodeError as e:
        raise handle_auth_error(e)


@router.post("/{chat_id}/rating", response_model=RatingResponse)
async def submit_rating(
    chat_id: UUID,
    body: RatingRequest,
    lifecycle: SessionLifecycleManager = Depends(get_lifecycle),
) -> RatingResponse:
    try:
        return RatingResponse(outcome=await lifecycle.submit_rating(chat_id, body.rating, body.review))
    except ErrCodeError as e:
        raise handle_auth_error(e)
