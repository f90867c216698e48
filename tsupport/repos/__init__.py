from .agent import AgentRepository
from .allowed_user import AllowedUserRepository
from .chat import ChatRepository
from .message import MessageRepository
from .push_subscription import PushSubscriptionRepository

__all__ = [
    "AgentRepository",
    "AllowedUserRepository",
    "ChatRepository",
    "MessageRepository",
    "PushSubscriptionRepository",
]
