from .customer import CustomerClient
from .handle import FileSessionHandleStore, LocalSessionHandle, SessionHandleStore
from .lifecycle import RatingOutcome, ResumeResult, SessionLifecycleManager, SessionState, session_state
from .messaging import MessageService
from .session import ChatSession, ChatSessionFactory
from .synchronizer import ChatView, MessageSynchronizer

__all__ = [
    "ChatSession",
    "ChatSessionFactory",
    "ChatView",
    "CustomerClient",
    "FileSessionHandleStore",
    "LocalSessionHandle",
    "MessageService",
    "MessageSynchronizer",
    "RatingOutcome",
    "ResumeResult",
    "SessionHandleStore",
    "SessionLifecycleManager",
    "SessionState",
    "session_state",
]
