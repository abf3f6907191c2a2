"""
Helpers shared by the store services: project lookup and error-mapped writes.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from civicbridge.exceptions import DatabaseError, NotFoundError, ValidationError
from civicbridge.models.project import Project

logger = logging.getLogger(__name__)


@asynccontextmanager
async def translate_db_errors(action: str) -> AsyncIterator[None]:
    """
    Map database failures raised inside the block to API errors.

    Integrity violations (duplicate application, dangling reference) are the
    client's problem and become 400; anything else is a 500 with details kept
    in the log.
    """
    try:
        yield
    except IntegrityError as e:
        logger.warning("Integrity error while trying to %s: %s", action, str(e.orig))
        raise ValidationError(
            message=f"Could not {action}: the data conflicts with existing records.",
            context={"action": action},
        )
    except SQLAlchemyError as e:
        logger.error("Database error while trying to %s: %s", action, str(e), exc_info=True)
        raise DatabaseError(context={"action": action, "error_type": type(e).__name__})


async def get_project_or_404(db: AsyncSession, project_id: str) -> Project:
    async with translate_db_errors("load the project"):
        project = await db.get(Project, project_id)
    if project is None:
        raise NotFoundError(resource="project", resource_id=project_id)
    return project


async def flush(db: AsyncSession, action: str) -> None:
    async with translate_db_errors(action):
        await db.flush()


async def execute(db: AsyncSession, statement: Any, action: str) -> Any:
    async with translate_db_errors(action):
        return await db.execute(statement)
