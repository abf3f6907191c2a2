"""
CivicBridge Backend: Bookmark Service Tests
===========================================
"""

import pytest
import pytest_asyncio

from civicbridge.exceptions import NotFoundError, UnauthorizedError
from civicbridge.schemas.project import ProjectCreate
from civicbridge.services.bookmark_service import ADDED, REMOVED, bookmark_service
from civicbridge.services.project_service import project_service


@pytest_asyncio.fixture
async def project(db_session, users):
    return await project_service.create_project(
        db_session, users["politician"], ProjectCreate(title="Playground")
    )


@pytest.mark.asyncio
async def test_toggle_twice_restores_state(db_session, users, project):
    before = await bookmark_service.bookmarked_project_ids(db_session, "stu-1")

    assert await bookmark_service.toggle_bookmark(db_session, users["student"], project.id) == ADDED
    assert await bookmark_service.bookmarked_project_ids(db_session, "stu-1") == [project.id]

    assert await bookmark_service.toggle_bookmark(db_session, users["student"], project.id) == REMOVED
    assert await bookmark_service.bookmarked_project_ids(db_session, "stu-1") == before


@pytest.mark.asyncio
async def test_bookmarks_are_per_user(db_session, users, project):
    await bookmark_service.toggle_bookmark(db_session, users["student"], project.id)

    assert await bookmark_service.is_bookmarked(db_session, "stu-1", project.id)
    assert not await bookmark_service.is_bookmarked(db_session, "stu-2", project.id)


@pytest.mark.asyncio
async def test_politician_cannot_bookmark(db_session, users, project):
    with pytest.raises(UnauthorizedError, match="only students"):
        await bookmark_service.toggle_bookmark(db_session, users["politician"], project.id)


@pytest.mark.asyncio
async def test_unknown_project(db_session, users):
    with pytest.raises(NotFoundError):
        await bookmark_service.toggle_bookmark(db_session, users["student"], "doesnotexist")
