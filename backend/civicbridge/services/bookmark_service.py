"""
CivicBridge Backend: Bookmark Store
===================================

What:  Students saving projects for later.
How:   One row per (user, project) in the `bookmarks` association table.
       A toggle removes an existing row or inserts a missing one.
"""

import logging
from typing import List

from sqlalchemy import delete, insert, select
from sqlalchemy.ext.asyncio import AsyncSession

from civicbridge.exceptions import UnauthorizedError
from civicbridge.models.user import User, bookmarks
from civicbridge.services.common import execute, get_project_or_404

logger = logging.getLogger(__name__)

ADDED = "added"
REMOVED = "removed"


class BookmarkService:

    async def is_bookmarked(self, db: AsyncSession, user_id: str, project_id: str) -> bool:
        result = await db.execute(
            select(bookmarks.c.project_id).where(
                bookmarks.c.user_id == user_id,
                bookmarks.c.project_id == project_id,
            )
        )
        return result.first() is not None

    async def toggle_bookmark(self, db: AsyncSession, user: User, project_id: str) -> str:
        """
        Add or remove a bookmark; return "added" or "removed".

        Raises:
            UnauthorizedError: the user is a politician
            NotFoundError: the project does not exist
        """
        if user.is_politician:
            raise UnauthorizedError("only students can bookmark projects")

        await get_project_or_404(db, project_id)

        if await self.is_bookmarked(db, user.id, project_id):
            await execute(
                db,
                delete(bookmarks).where(
                    bookmarks.c.user_id == user.id,
                    bookmarks.c.project_id == project_id,
                ),
                "remove the bookmark",
            )
            outcome = REMOVED
        else:
            await execute(
                db,
                insert(bookmarks).values(user_id=user.id, project_id=project_id),
                "add the bookmark",
            )
            outcome = ADDED

        logger.info("Bookmark %s: user=%s project=%s", outcome, user.id, project_id)
        return outcome

    async def bookmarked_project_ids(self, db: AsyncSession, user_id: str) -> List[str]:
        result = await db.execute(
            select(bookmarks.c.project_id).where(bookmarks.c.user_id == user_id)
        )
        return list(result.scalars().all())


bookmark_service = BookmarkService()
