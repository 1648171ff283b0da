from postboard.db.repositories.user_repository import UserRepository
from postboard.db.repositories.post_repository import PostRepository

__all__ = [
    "UserRepository",
    "PostRepository",
]
