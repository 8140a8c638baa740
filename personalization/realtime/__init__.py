"""Real-time session pipeline: stores, timers, routing and the service."""

from .content_cache import ContentCache
from .events import ACTIVITY_UPDATE, ERROR, NEW_CONTENT
from .router import BroadcastRouter
from .scheduler import RefreshScheduler
from .service import Connection, PersonalizationService
from .session_store import SessionStore

__all__ = [
    "ACTIVITY_UPDATE",
    "ERROR",
    "NEW_CONTENT",
    "BroadcastRouter",
    "Connection",
    "ContentCache",
    "PersonalizationService",
    "RefreshScheduler",
    "SessionStore",
]
