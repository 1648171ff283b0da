import asyncio
import logging
from typing import Optional, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, exists
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
import uuid
from dataclasses import replace

from postboard.core.exceptions import (
    NotFound, PostboardError, StoreUnavailable, Unauthorized, ValidationError
)
from postboard.core.time import next_timestamp
from postboard.db.models.post import Post as PostModel
from postboard.db.models.user import User as UserModel
from postboard.domains.posts.entities import (
    Post, PostPatch, PostStatus, clean_content, clean_title, parse_status
)

logger = logging.getLogger(__name__)


class PostRepository:
    """Хранилище постов.

    Единственный источник истины: кэш запроса только копирует отсюда.
    Все обращения к сессии идут под общим для запроса замком, поэтому
    параллельные загрузки разных ключей не используют сессию одновременно.
    Каждая запись либо фиксируется целиком, либо откатывается.
    """

    def __init__(
        self,
        session: AsyncSession,
        lock: Optional[asyncio.Lock] = None,
        max_attempts: int = 3
    ):
        self.session = session
        self._lock = lock or asyncio.Lock()
        self._max_attempts = max_attempts

    async def get(self, post_id: uuid.UUID) -> Post:
        """Получение поста по id"""
        async with self._lock:
            db_post = await self._guarded(self._select(post_id))
        if db_post is None:
            raise NotFound(f"Post {post_id} not found")
        return self._to_domain(db_post)

    async def list_published(self, limit: int = 20, offset: int = 0) -> Tuple[Post, ...]:
        """Опубликованные посты, новые первыми"""
        stmt = (
            select(PostModel)
            .where(PostModel.status == PostStatus.PUBLISHED)
            .order_by(PostModel.created_at.desc(), PostModel.id.desc())
            .offset(offset)
            .limit(limit)
        )
        return await self._list(stmt)

    async def list_drafts(self, author_id: uuid.UUID, limit: int = 20, offset: int = 0) -> Tuple[Post, ...]:
        """Черновики автора, последние измененные первыми"""
        stmt = (
            select(PostModel)
            .where(PostModel.status == PostStatus.DRAFT, PostModel.author_id == author_id)
            .order_by(PostModel.updated_at.desc(), PostModel.id.desc())
            .offset(offset)
            .limit(limit)
        )
        return await self._list(stmt)

    async def create(
        self,
        author_id: uuid.UUID,
        title: str,
        content: str,
        status: PostStatus = PostStatus.DRAFT
    ) -> Post:
        """Создание нового поста"""
        title = clean_title(title)
        content = clean_content(content)
        status = parse_status(status)

        async with self._lock:
            try:
                author_exists = await self.session.scalar(
                    select(exists().where(UserModel.id == author_id))
                )
                if not author_exists:
                    raise ValidationError(f"Author {author_id} does not exist")

                now = next_timestamp()
                db_post = PostModel(
                    id=uuid.uuid4(),
                    title=title,
                    content=content,
                    author_id=author_id,
                    status=status,
                    version=1,
                    created_at=now,
                    updated_at=now
                )
                self.session.add(db_post)
                await self.session.commit()
            except IntegrityError:
                await self.session.rollback()
                raise ValidationError(f"Author {author_id} does not exist")
            except PostboardError:
                await self.session.rollback()
                raise
            except SQLAlchemyError as e:
                await self.session.rollback()
                logger.error(f"Failed to create post for author {author_id}: {e}")
                raise StoreUnavailable("Post store is unavailable") from e
            except BaseException:
                # Отмена запроса посреди записи
                await self.session.rollback()
                raise

        logger.info(f"Post {db_post.id} created by {author_id} ({status.value})")
        return self._to_domain(db_post)

    async def update(self, post_id: uuid.UUID, author_id: uuid.UUID, patch: PostPatch) -> Post:
        """Частичное обновление поста его автором.

        Авторство сверяется с сохраненной строкой, а не с данными вызывающего.
        Конкурентные записи сериализуются через compare-and-set по version.
        """
        async with self._lock:
            try:
                for attempt in range(1, self._max_attempts + 1):
                    db_post = await self._select(post_id)
                    if db_post is None:
                        raise NotFound(f"Post {post_id} not found")
                    if db_post.author_id != author_id:
                        raise Unauthorized("Only the author can edit this post")

                    current = self._to_domain(db_post)
                    values = patch.changes_for(current)
                    updated_at = next_timestamp(current.updated_at)
                    stmt = (
                        update(PostModel)
                        .where(PostModel.id == post_id, PostModel.version == db_post.version)
                        .values(
                            **values,
                            updated_at=updated_at,
                            version=db_post.version + 1
                        )
                        .execution_options(synchronize_session=False)
                    )
                    result = await self.session.execute(stmt)
                    if result.rowcount == 1:
                        await self.session.commit()
                        # После фиксации обращений к БД нет: результат собирается из примененного патча
                        updated = replace(current, updated_at=updated_at, **values)
                        break

                    await self.session.rollback()
                    logger.warning(f"Concurrent update of post {post_id}, attempt {attempt}")
                else:
                    raise StoreUnavailable(f"Post {post_id} is being modified concurrently")
            except PostboardError:
                await self.session.rollback()
                raise
            except SQLAlchemyError as e:
                await self.session.rollback()
                logger.error(f"Failed to update post {post_id}: {e}")
                raise StoreUnavailable("Post store is unavailable") from e
            except BaseException:
                await self.session.rollback()
                raise

        logger.info(f"Post {post_id} updated by {author_id}: {patch!r}")
        return updated

    async def _select(self, post_id: uuid.UUID) -> Optional[PostModel]:
        result = await self.session.execute(
            select(PostModel)
            .where(PostModel.id == post_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def _list(self, stmt) -> Tuple[Post, ...]:
        async with self._lock:
            result = await self._guarded(
                self.session.execute(stmt.execution_options(populate_existing=True))
            )
            return tuple(self._to_domain(db_post) for db_post in result.scalars().all())

    async def _guarded(self, awaitable):
        try:
            return await awaitable
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(f"Post query failed: {e}")
            raise StoreUnavailable("Post store is unavailable") from e

    def _to_domain(self, db_post: PostModel) -> Post:
        """Преобразование модели БД в доменную сущность"""
        return Post(
            id=db_post.id,
            title=db_post.title,
            content=db_post.content,
            author_id=db_post.author_id,
            status=db_post.status,
            created_at=db_post.created_at,
            updated_at=db_post.updated_at
        )
