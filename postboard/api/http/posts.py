from fastapi import APIRouter, Depends, Query, status
from typing import Dict, List, Optional
import uuid

from postboard.core.auth import get_principal_token
from postboard.core.config import settings
from postboard.core.context import RequestContext, get_request_context
from postboard.domains.identity.entities import User
from postboard.domains.posts.entities import Post
from postboard.domains.posts.schemas import (
    AuthorResponse, PostCreate, PostListResponse, PostResponse, PostUpdate
)
from postboard.domains.posts.services import PostService

router = APIRouter(prefix="/posts", tags=["posts"])


def _to_response(post: Post, author: Optional[User] = None) -> PostResponse:
    return PostResponse(
        id=post.id,
        title=post.title,
        content=post.content,
        status=post.status,
        author_id=post.author_id,
        author=AuthorResponse.model_validate(author) if author else None,
        created_at=post.created_at,
        updated_at=post.updated_at
    )


async def _to_list_response(
    service: PostService, posts: List[Post], limit: int, offset: int
) -> PostListResponse:
    authors: Dict[uuid.UUID, User] = {}
    for post in posts:
        if post.author_id not in authors:
            authors[post.author_id] = await service.fetch_author(post.author_id)

    return PostListResponse(
        posts=[_to_response(post, authors[post.author_id]) for post in posts],
        limit=limit,
        offset=offset
    )


@router.get("/", response_model=PostListResponse)
async def list_published_posts(
    limit: Optional[int] = Query(None, ge=1, le=settings.max_page_size),
    offset: int = Query(0, ge=0),
    context: RequestContext = Depends(get_request_context)
):
    """Лента опубликованных постов"""
    service = PostService(context)
    posts = await service.fetch_published_list(limit=limit, offset=offset)
    return await _to_list_response(service, posts, limit or context.settings.default_page_size, offset)


@router.get("/drafts", response_model=PostListResponse)
async def list_my_drafts(
    limit: Optional[int] = Query(None, ge=1, le=settings.max_page_size),
    offset: int = Query(0, ge=0),
    token: Optional[str] = Depends(get_principal_token),
    context: RequestContext = Depends(get_request_context)
):
    """Черновики текущего пользователя"""
    service = PostService(context)
    posts = await service.fetch_my_drafts(token, limit=limit, offset=offset)
    return await _to_list_response(service, posts, limit or context.settings.default_page_size, offset)


@router.get("/{post_id}", response_model=PostResponse)
async def get_post(
    post_id: uuid.UUID,
    token: Optional[str] = Depends(get_principal_token),
    context: RequestContext = Depends(get_request_context)
):
    """Получение поста по id"""
    service = PostService(context)
    post = await service.fetch_post(post_id, token)
    return _to_response(post, await service.fetch_author(post.author_id))


@router.post("/", response_model=PostResponse, status_code=status.HTTP_201_CREATED)
async def create_post(
    post_data: PostCreate,
    token: Optional[str] = Depends(get_principal_token),
    context: RequestContext = Depends(get_request_context)
):
    """Создание нового поста"""
    service = PostService(context)
    post = await service.create_post(token, post_data.title, post_data.content, post_data.status)
    return _to_response(post, await service.fetch_author(post.author_id))


@router.patch("/{post_id}", response_model=PostResponse)
async def update_post(
    post_id: uuid.UUID,
    update_data: PostUpdate,
    token: Optional[str] = Depends(get_principal_token),
    context: RequestContext = Depends(get_request_context)
):
    """Частичное обновление поста"""
    service = PostService(context)
    post = await service.update_post(token, post_id, update_data.model_dump(exclude_unset=True))
    return _to_response(post, await service.fetch_author(post.author_id))
