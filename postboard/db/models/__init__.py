from postboard.db.models.user import User
from postboard.db.models.post import Post, PostStatus

__all__ = [
    "User",
    "Post",
    "PostStatus",
]
