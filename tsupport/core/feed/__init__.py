from .adapter import ChangeFeedAdapter, FeedSubscription
from .events import ChangeEvent, ChangeKind
from .publisher import ChangeFeedPublisher

__all__ = [
    "ChangeEvent",
    "ChangeFeedAdapter",
    "ChangeFeedPublisher",
    "ChangeKind",
    "FeedSubscription",
]
