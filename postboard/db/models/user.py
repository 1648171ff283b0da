from sqlalchemy import Column, String
from sqlalchemy.orm import relationship

from postboard.db.base import BaseModel


class User(BaseModel):
    __tablename__ = "users"

    display_name = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    # Ссылка на учетную запись во внешнем провайдере идентификации
    external_id = Column(String(255), unique=True, index=True, nullable=False)

    # Relationships
    posts = relationship("Post", back_populates="author")
