from postboard.domains.posts.entities import Post, PostPatch, PostStatus
from postboard.domains.posts.schemas import (
    PostBase, PostCreate, PostUpdate, AuthorResponse, PostResponse, PostListResponse
)

__all__ = [
    "Post", "PostPatch", "PostStatus",
    "PostBase", "PostCreate", "PostUpdate", "AuthorResponse", "PostResponse",
    "PostListResponse",
]
