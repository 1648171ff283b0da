import enum
import uuid
from dataclasses import dataclass
from datetime import datetime
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from postboard.core.exceptions import ValidationError


class PostStatus(str, enum.Enum):
    DRAFT = "draft"
    PUBLISHED = "published"


# Допустимые переходы статуса; published конечный
_TRANSITIONS = {
    PostStatus.DRAFT: {PostStatus.DRAFT, PostStatus.PUBLISHED},
    PostStatus.PUBLISHED: {PostStatus.PUBLISHED},
}


def ensure_transition(current: PostStatus, target: PostStatus) -> None:
    """Проверка перехода статуса draft -> published"""
    if target not in _TRANSITIONS[current]:
        raise ValidationError(f"Cannot change status from {current.value} to {target.value}")


def parse_status(value: Any) -> PostStatus:
    if isinstance(value, PostStatus):
        return value
    try:
        return PostStatus(value)
    except ValueError:
        raise ValidationError(f"Unknown status: {value!r}")


def clean_title(value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("Title cannot be empty")
    return value.strip()


def clean_content(value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("Content cannot be empty")
    return value


@dataclass(frozen=True)
class Post:
    """Сущность поста. Неизменяема: один и тот же объект отдается из кэша запроса"""
    id: uuid.UUID
    title: str
    content: str
    author_id: uuid.UUID
    status: PostStatus
    created_at: datetime
    updated_at: datetime

    @property
    def is_published(self) -> bool:
        return self.status is PostStatus.PUBLISHED

    def is_visible_to(self, user_id: Optional[uuid.UUID]) -> bool:
        """Черновик виден только автору"""
        return self.is_published or (user_id is not None and user_id == self.author_id)


class PostPatch:
    """Частичное изменение поста.

    Хранит только переданные поля: отсутствующее поле остается без изменений,
    а переданное пустое значение считается ошибкой, а не очисткой.
    """

    FIELDS = ("title", "content", "status")

    def __init__(self, **fields: Any):
        unknown = set(fields) - set(self.FIELDS)
        if unknown:
            raise ValidationError(f"Unknown fields in patch: {', '.join(sorted(unknown))}")
        if not fields:
            raise ValidationError("Patch is empty")

        cleaned: Dict[str, Any] = {}
        if "title" in fields:
            cleaned["title"] = clean_title(fields["title"])
        if "content" in fields:
            cleaned["content"] = clean_content(fields["content"])
        if "status" in fields:
            cleaned["status"] = parse_status(fields["status"])
        self._fields = MappingProxyType(cleaned)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "PostPatch":
        return cls(**dict(data))

    @property
    def fields(self) -> Mapping[str, Any]:
        return self._fields

    def __contains__(self, name: str) -> bool:
        return name in self._fields

    def get(self, name: str, default: Any = None) -> Any:
        return self._fields.get(name, default)

    def changes_for(self, post: Post) -> Dict[str, Any]:
        """Значения колонок для записи с проверкой перехода статуса"""
        if "status" in self._fields:
            ensure_transition(post.status, self._fields["status"])
        return dict(self._fields)

    def __repr__(self) -> str:
        return f"PostPatch({', '.join(sorted(self._fields))})"
