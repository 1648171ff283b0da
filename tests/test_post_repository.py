"""
Tests for PostRepository against in-memory SQLite.
"""

import asyncio
import uuid

from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import select, update
from sqlalchemy.exc import OperationalError

from postboard.core.exceptions import NotFound, StoreUnavailable, Unauthorized, ValidationError
from postboard.db.models.post import Post as PostModel
from postboard.db.repositories import PostRepository
from postboard.domains.posts.entities import PostPatch, PostStatus


class RacingPostRepository(PostRepository):
    """Bumps the row version right after each read, as a concurrent writer would."""

    def __init__(self, *args, races=1, **kwargs):
        super().__init__(*args, **kwargs)
        self.races = races
        self.selects = 0

    async def _select(self, post_id):
        db_post = await super()._select(post_id)
        self.selects += 1
        if self.races and db_post is not None:
            self.races -= 1
            await self.session.execute(
                update(PostModel)
                .where(PostModel.id == post_id)
                .values(version=PostModel.version + 1)
                .execution_options(synchronize_session=False)
            )
        return db_post


class TestPostRepository:

    @pytest.mark.asyncio
    async def test_get_missing_raises_not_found(self, post_repository):
        with pytest.raises(NotFound):
            await post_repository.get(uuid.uuid4())

    @pytest.mark.asyncio
    async def test_create_then_get_round_trip(self, post_repository, alice):
        created = await post_repository.create(alice.id, "Hello", "World")

        fetched = await post_repository.get(created.id)

        assert fetched == created
        assert fetched.status is PostStatus.DRAFT
        assert fetched.author_id == alice.id
        assert fetched.created_at == fetched.updated_at

    @pytest.mark.asyncio
    @pytest.mark.parametrize("title, content", [
        ("", "World"),
        ("   ", "World"),
        ("Hello", ""),
    ])
    async def test_create_rejects_empty_fields(self, post_repository, alice, title, content):
        with pytest.raises(ValidationError):
            await post_repository.create(alice.id, title, content)

    @pytest.mark.asyncio
    async def test_create_rejects_unknown_author(self, post_repository, session):
        with pytest.raises(ValidationError):
            await post_repository.create(uuid.uuid4(), "Hello", "World")

        result = await session.execute(select(PostModel))
        assert result.scalars().all() == []

    @pytest.mark.asyncio
    async def test_update_applies_partial_patch(self, post_repository, alice):
        post = await post_repository.create(alice.id, "Hello", "World")

        updated = await post_repository.update(post.id, alice.id, PostPatch(title="Hi"))

        assert updated.title == "Hi"
        assert updated.content == "World"
        assert updated.status is PostStatus.DRAFT
        assert updated.created_at == post.created_at
        assert updated.updated_at > post.updated_at

    @pytest.mark.asyncio
    async def test_updated_at_is_strictly_increasing(self, post_repository, alice):
        post = await post_repository.create(alice.id, "Hello", "World")

        first = await post_repository.update(post.id, alice.id, PostPatch(content="One"))
        second = await post_repository.update(post.id, alice.id, PostPatch(content="Two"))

        assert post.updated_at < first.updated_at < second.updated_at

    @pytest.mark.asyncio
    async def test_update_by_non_author_is_rejected(self, post_repository, alice, bob):
        post = await post_repository.create(alice.id, "Hello", "World")

        with pytest.raises(Unauthorized):
            await post_repository.update(post.id, bob.id, PostPatch(title="Hijacked"))

        assert await post_repository.get(post.id) == post

    @pytest.mark.asyncio
    async def test_update_missing_post(self, post_repository, alice):
        with pytest.raises(NotFound):
            await post_repository.update(uuid.uuid4(), alice.id, PostPatch(title="Hi"))

    @pytest.mark.asyncio
    async def test_published_cannot_return_to_draft(self, post_repository, alice):
        post = await post_repository.create(alice.id, "Hello", "World", PostStatus.PUBLISHED)

        with pytest.raises(ValidationError):
            await post_repository.update(post.id, alice.id, PostPatch(status="draft"))

        assert (await post_repository.get(post.id)).status is PostStatus.PUBLISHED

    @pytest.mark.asyncio
    async def test_list_published_filters_and_orders(self, post_repository, alice, bob):
        older = await post_repository.create(alice.id, "Older", "Text", PostStatus.PUBLISHED)
        await post_repository.create(alice.id, "Draft", "Text")
        newer = await post_repository.create(bob.id, "Newer", "Text", PostStatus.PUBLISHED)

        posts = await post_repository.list_published()

        assert [post.id for post in posts] == [newer.id, older.id]
        assert await post_repository.list_published(limit=1, offset=1) == (older,)

    @pytest.mark.asyncio
    async def test_list_drafts_only_returns_authors_drafts(self, post_repository, alice, bob):
        mine = await post_repository.create(alice.id, "Mine", "Text")
        await post_repository.create(bob.id, "Theirs", "Text")
        await post_repository.create(alice.id, "Public", "Text", PostStatus.PUBLISHED)

        assert await post_repository.list_drafts(alice.id) == (mine,)

    @pytest.mark.asyncio
    async def test_update_retries_after_lost_race(self, session, alice):
        repository = RacingPostRepository(session, races=1)
        post = await repository.create(alice.id, "Hello", "World")

        updated = await repository.update(post.id, alice.id, PostPatch(title="Hi"))

        assert updated.title == "Hi"
        assert repository.selects == 2

    @pytest.mark.asyncio
    async def test_update_gives_up_after_max_attempts(self, session, alice):
        repository = RacingPostRepository(session, races=10, max_attempts=2)
        post = await repository.create(alice.id, "Hello", "World")

        with pytest.raises(StoreUnavailable):
            await repository.update(post.id, alice.id, PostPatch(title="Hi"))

        assert (await PostRepository(session).get(post.id)).title == "Hello"

    @pytest.mark.asyncio
    async def test_concurrent_calls_share_the_session_safely(self, post_repository, alice):
        post = await post_repository.create(alice.id, "Hello", "World", PostStatus.PUBLISHED)

        fetched, listed = await asyncio.gather(
            post_repository.get(post.id),
            post_repository.list_published(),
        )

        assert fetched == post
        assert listed == (post,)

    @pytest.mark.asyncio
    async def test_update_returns_committed_values_without_rereading(self, session, alice):
        repository = RacingPostRepository(session, races=0)
        post = await repository.create(alice.id, "Hello", "World")

        updated = await repository.update(post.id, alice.id, PostPatch(title="Hi", status="published"))

        assert repository.selects == 1
        assert await repository.get(post.id) == updated


def connection_lost():
    return OperationalError("SELECT", {}, Exception("connection lost"))


class StalledCommit:
    """Replacement for session.commit that never finishes."""

    def __init__(self):
        self.reached = asyncio.Event()

    async def __call__(self):
        self.reached.set()
        await asyncio.Event().wait()


class TestPostRepositoryFailures:

    @pytest.mark.asyncio
    async def test_get_maps_driver_errors(self, post_repository, session, alice):
        post = await post_repository.create(alice.id, "Hello", "World")

        with patch.object(session, "execute", AsyncMock(side_effect=connection_lost())):
            with pytest.raises(StoreUnavailable):
                await post_repository.get(post.id)

        assert await post_repository.get(post.id) == post

    @pytest.mark.asyncio
    async def test_list_published_maps_driver_errors(self, post_repository, session):
        with patch.object(session, "execute", AsyncMock(side_effect=connection_lost())):
            with pytest.raises(StoreUnavailable):
                await post_repository.list_published()

    @pytest.mark.asyncio
    async def test_failed_create_commit_leaves_no_row(self, post_repository, session, alice):
        with patch.object(session, "commit", AsyncMock(side_effect=connection_lost())):
            with pytest.raises(StoreUnavailable):
                await post_repository.create(alice.id, "Hello", "World")

        result = await session.execute(select(PostModel))
        assert result.scalars().all() == []

    @pytest.mark.asyncio
    async def test_cancelled_update_is_rolled_back(self, post_repository, session, alice):
        post = await post_repository.create(alice.id, "Hello", "World")
        commit = StalledCommit()

        with patch.object(session, "commit", commit):
            task = asyncio.create_task(
                post_repository.update(post.id, alice.id, PostPatch(title="Half-written"))
            )
            await commit.reached.wait()
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        assert await post_repository.get(post.id) == post

    @pytest.mark.asyncio
    async def test_cancelled_create_is_rolled_back(self, post_repository, session, alice):
        commit = StalledCommit()

        with patch.object(session, "commit", commit):
            task = asyncio.create_task(post_repository.create(alice.id, "Hello", "World"))
            await commit.reached.wait()
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        result = await session.execute(select(PostModel))
        assert result.scalars().all() == []
