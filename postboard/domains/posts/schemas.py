from pydantic import BaseModel, Field, field_validator, ConfigDict
from typing import Optional, List
import uuid
from datetime import datetime

from postboard.domains.posts.entities import PostStatus


class PostBase(BaseModel):
    """Базовая схема поста"""
    title: str = Field(..., min_length=1, max_length=255)
    content: str = Field(..., min_length=1, max_length=1000000)

    @field_validator('title')
    @classmethod
    def validate_title(cls, v):
        if not v.strip():
            raise ValueError('Title cannot be empty')
        return v.strip()

    @field_validator('content')
    @classmethod
    def validate_content(cls, v):
        if not v.strip():
            raise ValueError('Content cannot be empty')
        return v


class PostCreate(PostBase):
    """Схема для создания поста"""
    status: PostStatus = PostStatus.DRAFT


class PostUpdate(BaseModel):
    """Схема для частичного обновления поста.

    Отсутствующие поля не попадают в model_dump(exclude_unset=True),
    явный null передается дальше и отклоняется при валидации патча.
    """
    title: Optional[str] = Field(None, max_length=255)
    content: Optional[str] = Field(None, max_length=1000000)
    status: Optional[PostStatus] = None

    model_config = ConfigDict(extra="forbid")


class AuthorResponse(BaseModel):
    """Автор поста для отображения"""
    id: uuid.UUID
    display_name: str

    model_config = ConfigDict(from_attributes=True)


class PostResponse(BaseModel):
    """Схема для ответа с данными поста"""
    id: uuid.UUID
    title: str
    content: str
    status: PostStatus
    author_id: uuid.UUID
    author: Optional[AuthorResponse] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PostListResponse(BaseModel):
    """Схема для списка постов"""
    posts: List[PostResponse]
    limit: int
    offset: int
