import enum
from dataclasses import dataclass
from typing import Any, Hashable, Tuple


def _freeze(value: Any) -> Hashable:
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, dict):
        return tuple(sorted((k, _freeze(v)) for k, v in value.items()))
    if isinstance(value, (list, tuple, set, frozenset)):
        items = [_freeze(v) for v in value]
        return tuple(sorted(items, key=repr)) if isinstance(value, (set, frozenset)) else tuple(items)
    return value


@dataclass(frozen=True)
class CacheKey:
    """Ключ кэша запроса.

    Для сущности ident = (id,), для выборки ident = отсортированные пары
    (параметр, значение), поэтому выборки с разными фильтрами, порядком
    или страницей никогда не совпадают.
    """
    kind: str
    ident: Tuple[Hashable, ...]
    is_query: bool = False

    @classmethod
    def entity(cls, kind: str, entity_id: Any) -> "CacheKey":
        return cls(kind=kind, ident=(_freeze(entity_id),))

    @classmethod
    def query(cls, kind: str, **shape: Any) -> "CacheKey":
        return cls(kind=kind, ident=_freeze(shape), is_query=True)

    def __str__(self) -> str:
        if self.is_query:
            shape = ",".join(f"{k}={v}" for k, v in self.ident)
            return f"{self.kind}?{shape}"
        return f"{self.kind}:{self.ident[0]}"
