import logging
from typing import Any, Callable, List

from postboard.cache.keys import CacheKey
from postboard.cache.request_cache import RequestCache

logger = logging.getLogger(__name__)

InvalidationListener = Callable[[str, Any, List[CacheKey]], None]


class InvalidationCoordinator:
    """Сброс кэша запроса после успешной записи.

    Сбрасывается ключ самой сущности и все ключи выборок того же вида:
    членство в списке зависит от статуса, а ключ списка id не содержит.
    Лишний сброс допустим, недостаточный нет.
    """

    def __init__(self, cache: RequestCache):
        self._cache = cache
        self._listeners: List[InvalidationListener] = []

    def subscribe(self, listener: InvalidationListener) -> Callable[[], None]:
        """Подписка на сигнал о перезагрузке; возвращает функцию отписки"""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def invalidate(self, entity_kind: str, entity_id: Any) -> int:
        exact = CacheKey.entity(entity_kind, entity_id)
        dropped = self._cache.invalidate_where(
            lambda key: key == exact or (key.is_query and key.kind == entity_kind)
        )
        logger.debug(f"Invalidated {len(dropped)} cache keys for {exact}")

        for listener in list(self._listeners):
            listener(entity_kind, entity_id, dropped)
        return len(dropped)
