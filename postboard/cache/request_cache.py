import asyncio
import functools
import logging
from typing import Any, Awaitable, Callable, Dict, List, Set, TypeVar

from postboard.cache.keys import CacheKey

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RequestCache:
    """Мемоизация чтений в пределах одного запроса.

    Значение по ключу хранится как задача загрузки: первый вызов запускает
    loader, все последующие (в том числе конкурентные) ждут ту же задачу.
    Упавшая или отмененная загрузка в кэше не остается.
    """

    def __init__(self):
        self._entries: Dict[CacheKey, "asyncio.Task[Any]"] = {}
        # Сброшенные, но еще не завершенные загрузки: их ждут прежние вызовы
        self._detached: Set["asyncio.Task[Any]"] = set()
        self._closed = False
        self.hits = 0
        self.misses = 0

    async def get_or_load(self, key: CacheKey, loader: Callable[[], Awaitable[T]]) -> T:
        if self._closed:
            raise RuntimeError("Request cache is closed")

        task = self._entries.get(key)
        if task is not None and task.done() and (task.cancelled() or task.exception() is not None):
            task = None

        if task is None:
            self.misses += 1
            logger.debug(f"Cache miss: {key}")
            task = asyncio.ensure_future(loader())
            self._entries[key] = task
            task.add_done_callback(functools.partial(self._discard_failed, key))
        else:
            self.hits += 1
            logger.debug(f"Cache hit: {key}")

        # shield: отмена одного ожидающего не отменяет общую загрузку
        return await asyncio.shield(task)

    def invalidate(self, key: CacheKey) -> bool:
        task = self._entries.pop(key, None)
        if task is None:
            return False
        self._detach(task)
        return True

    def invalidate_where(self, predicate: Callable[[CacheKey], bool]) -> List[CacheKey]:
        dropped = [key for key in self._entries if predicate(key)]
        for key in dropped:
            self._detach(self._entries.pop(key))
        return dropped

    def keys(self) -> List[CacheKey]:
        return list(self._entries)

    def __contains__(self, key: CacheKey) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def closed(self) -> bool:
        return self._closed

    async def close(self) -> None:
        """Конец запроса: незавершенные загрузки отменяются, записи удаляются"""
        self._closed = True
        pending = [task for task in self._entries.values() if not task.done()]
        pending.extend(task for task in self._detached if not task.done())
        self._entries.clear()
        self._detached.clear()
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        logger.debug(f"Request cache closed: hits={self.hits} misses={self.misses}")

    def _detach(self, task: "asyncio.Task[Any]") -> None:
        if not task.done():
            self._detached.add(task)
            task.add_done_callback(self._detached.discard)

    def _discard_failed(self, key: CacheKey, task: "asyncio.Task[Any]") -> None:
        if task.cancelled():
            failed = True
        else:
            # exception() помечает ошибку как полученную
            failed = task.exception() is not None
        if failed and self._entries.get(key) is task:
            del self._entries[key]
