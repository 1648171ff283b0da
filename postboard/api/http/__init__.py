from postboard.api.http.health import router as health_router
from postboard.api.http.posts import router as posts_router

__all__ = [
    "health_router",
    "posts_router",
]
