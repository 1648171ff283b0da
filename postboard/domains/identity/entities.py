import uuid
from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class User:
    """Пользователь. Принадлежит внешнему провайдеру, здесь только читается"""
    id: uuid.UUID
    display_name: str
    email: str
    external_id: str
    created_at: datetime
