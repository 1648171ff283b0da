from sqlalchemy import Column, String, Text, Integer, ForeignKey, UUID, Enum, Index
from sqlalchemy.orm import relationship

from postboard.db.base import BaseModel
from postboard.domains.posts.entities import PostStatus


class Post(BaseModel):
    __tablename__ = "posts"
    __table_args__ = (
        Index("ix_posts_status_created_at", "status", "created_at"),
        Index("ix_posts_author_status", "author_id", "status"),
    )

    title = Column(String(255), nullable=False)
    content = Column(Text, nullable=False)
    author_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)
    status = Column(Enum(PostStatus, name="post_status"), nullable=False, default=PostStatus.DRAFT)
    # Номер версии строки для compare-and-set
    version = Column(Integer, nullable=False, default=1)

    # Relationships
    author = relationship("User", back_populates="posts")
