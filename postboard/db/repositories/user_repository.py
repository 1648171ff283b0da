import asyncio
import logging
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
import uuid

from postboard.core.exceptions import NotFound, StoreUnavailable, ValidationError
from postboard.db.models.user import User as UserModel
from postboard.domains.identity.entities import User

logger = logging.getLogger(__name__)


class UserRepository:
    """Репозиторий для чтения пользователей внешнего провайдера"""

    def __init__(self, session: AsyncSession, lock: Optional[asyncio.Lock] = None):
        self.session = session
        self._lock = lock or asyncio.Lock()

    async def create(self, display_name: str, email: str, external_id: str) -> User:
        """Регистрация пользователя, пришедшего из провайдера идентификации"""
        db_user = UserModel(
            id=uuid.uuid4(),
            display_name=display_name,
            email=email,
            external_id=external_id
        )

        async with self._lock:
            self.session.add(db_user)
            try:
                await self.session.commit()
            except IntegrityError:
                await self.session.rollback()
                raise ValidationError("User with this email or external id already exists")
            except SQLAlchemyError as e:
                await self.session.rollback()
                logger.error(f"Failed to create user {email}: {e}")
                raise StoreUnavailable("User store is unavailable") from e

        return self._to_domain(db_user)

    async def get(self, user_id: uuid.UUID) -> User:
        """Получение пользователя по id"""
        db_user = await self._fetch_one(select(UserModel).where(UserModel.id == user_id))
        if db_user is None:
            raise NotFound(f"User {user_id} not found")
        return self._to_domain(db_user)

    async def get_by_external_id(self, external_id: str) -> Optional[User]:
        """Получение пользователя по ссылке внешнего провайдера"""
        db_user = await self._fetch_one(select(UserModel).where(UserModel.external_id == external_id))
        return self._to_domain(db_user) if db_user else None

    async def _fetch_one(self, stmt) -> Optional[UserModel]:
        async with self._lock:
            try:
                result = await self.session.execute(stmt)
                return result.scalar_one_or_none()
            except SQLAlchemyError as e:
                await self.session.rollback()
                logger.error(f"User query failed: {e}")
                raise StoreUnavailable("User store is unavailable") from e

    def _to_domain(self, db_user: UserModel) -> User:
        """Преобразование модели БД в доменную сущность"""
        return User(
            id=db_user.id,
            display_name=db_user.display_name,
            email=db_user.email,
            external_id=db_user.external_id,
            created_at=db_user.created_at
        )
