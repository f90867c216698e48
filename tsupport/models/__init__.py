from .agent import Agent, AgentRead
from .allowed_user import AllowedUser
from .chat import Chat, ChatCreate, ChatRead, ChatStatus
from .message import AttachmentType, Message, MessageCreate, MessageRead, SenderRole
from .push_subscription import PushSubscription

__all__ = [
    "Agent",
    "AgentRead",
    "AllowedUser",
    "AttachmentType",
    "Chat",
    "ChatCreate",
    "ChatRead",
    "ChatStatus",
    "Message",
    "MessageCreate",
    "MessageRead",
    "PushSubscription",
    "SenderRole",
]
