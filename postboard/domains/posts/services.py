import logging
from typing import Any, List, Mapping, Optional, Union
import uuid

from postboard.cache import CacheKey
from postboard.core.context import RequestContext
from postboard.core.exceptions import NotFound
from postboard.domains.identity.entities import User
from postboard.domains.posts.entities import Post, PostPatch, PostStatus

logger = logging.getLogger(__name__)

POST = "post"
USER = "user"


class PostService:
    """Сервис постов: API чтения через кэш запроса и API записи со сбросом кэша"""

    def __init__(self, context: RequestContext):
        self.context = context
        self.posts = context.posts
        self.users = context.users
        self.cache = context.cache
        self.invalidator = context.invalidator
        self.guard = context.guard

    # Чтение

    async def fetch_post(self, post_id: uuid.UUID, principal_token: Optional[str] = None) -> Post:
        """Получение поста; чужой черновик неотличим от отсутствующего поста"""
        viewer_id = await self.guard.authorize_optional(principal_token)
        post = await self.cache.get_or_load(
            CacheKey.entity(POST, post_id),
            lambda: self.posts.get(post_id)
        )
        if not post.is_visible_to(viewer_id):
            logger.debug(f"Draft {post_id} hidden from viewer {viewer_id}")
            raise NotFound(f"Post {post_id} not found")
        return post

    async def fetch_published_list(self, limit: Optional[int] = None, offset: int = 0) -> List[Post]:
        """Опубликованные посты, новые первыми"""
        limit = self._page_size(limit)
        offset = self._offset(offset)
        posts = await self.cache.get_or_load(
            CacheKey.query(POST, status=PostStatus.PUBLISHED, order_by="recency", limit=limit, offset=offset),
            lambda: self.posts.list_published(limit=limit, offset=offset)
        )
        return list(posts)

    async def fetch_my_drafts(
        self,
        principal_token: Optional[str],
        limit: Optional[int] = None,
        offset: int = 0
    ) -> List[Post]:
        """Черновики вызывающего пользователя"""
        author_id = await self.guard.authorize(principal_token)
        limit = self._page_size(limit)
        offset = self._offset(offset)
        posts = await self.cache.get_or_load(
            CacheKey.query(
                POST, status=PostStatus.DRAFT, author_id=author_id,
                order_by="updated", limit=limit, offset=offset
            ),
            lambda: self.posts.list_drafts(author_id, limit=limit, offset=offset)
        )
        return list(posts)

    async def fetch_author(self, user_id: uuid.UUID) -> User:
        return await self.cache.get_or_load(
            CacheKey.entity(USER, user_id),
            lambda: self.users.get(user_id)
        )

    # Запись

    async def create_post(
        self,
        principal_token: Optional[str],
        title: str,
        content: str,
        status: PostStatus = PostStatus.DRAFT
    ) -> Post:
        """Создание поста от имени вызывающего пользователя"""
        author_id = await self.guard.authorize(principal_token)
        post = await self.posts.create(author_id, title, content, status)
        self.invalidator.invalidate(POST, post.id)
        return post

    async def update_post(
        self,
        principal_token: Optional[str],
        post_id: uuid.UUID,
        patch: Union[PostPatch, Mapping[str, Any]]
    ) -> Post:
        """Частичное обновление поста его автором"""
        author_id = await self.guard.authorize(principal_token)
        if not isinstance(patch, PostPatch):
            patch = PostPatch.from_mapping(patch)

        post = await self.posts.update(post_id, author_id, patch)
        self.invalidator.invalidate(POST, post.id)
        return post

    @staticmethod
    def _offset(offset: int) -> int:
        return max(0, offset)

    def _page_size(self, limit: Optional[int]) -> int:
        settings = self.context.settings
        if limit is None:
            return settings.default_page_size
        return max(1, min(limit, settings.max_page_size))
