"""Route modules."""

from .auth import router as auth_router
from .comments import router as comments_router
from .events import router as events_router
from .health import router as health_router
from .media import router as media_router
from .periods import router as periods_router

__all__ = [
    "auth_router",
    "comments_router",
    "events_router",
    "health_router",
    "media_router",
    "periods_router",
]
