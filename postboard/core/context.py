import asyncio
import logging

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from postboard.cache import InvalidationCoordinator, RequestCache
from postboard.core.auth import AccessGuard
from postboard.core.config import Settings, settings as default_settings
from postboard.core.db import get_db
from postboard.db.repositories import PostRepository, UserRepository
from postboard.domains.identity.services import IdentityResolver, JwtIdentityResolver

logger = logging.getLogger(__name__)


class RequestContext:
    """Все, что живет ровно один запрос: сессия, кэш чтений, сброс кэша.

    Передается в сервисы явно; глобального кэша нет, поэтому данные одного
    пользователя не попадают в запрос другого.
    """

    def __init__(
        self,
        session: AsyncSession,
        settings: Settings = default_settings,
        resolver: IdentityResolver = None
    ):
        self.session = session
        self.settings = settings
        # Один замок на сессию: сессия не допускает параллельных запросов
        self._session_lock = asyncio.Lock()
        self.users = UserRepository(session, self._session_lock)
        self.posts = PostRepository(
            session, self._session_lock, max_attempts=settings.update_max_attempts
        )
        self.cache = RequestCache()
        self.invalidator = InvalidationCoordinator(self.cache)
        self.guard = AccessGuard(resolver or JwtIdentityResolver(self.users))

    async def close(self) -> None:
        await self.cache.close()

    async def __aenter__(self) -> "RequestContext":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()


async def get_request_context(db: AsyncSession = Depends(get_db)):
    async with RequestContext(db) as context:
        yield context
