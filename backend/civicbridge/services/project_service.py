"""
CivicBridge Backend: Project Store
==================================

What:  Project CRUD, the status lifecycle, search/pagination and the
       "latest projects" feed.
How:   Stateless service; every method receives the request's AsyncSession.
       Attachments are delegated to FileService, applications to
       ApplicationService, query parsing to the query_validator module.
Who:   Called by the /projects route handlers.

Status Lifecycle:
    open ──close──▶ closed ──complete──▶ completed

    Any other move fails with InvalidTransitionError. A successful move
    returns one StatusNotification per applicant; the route hands them to the
    NotificationDispatcher after the response.

Search:
    No recognized parameter → the caller's own projects (politician) or the
    projects they applied to (student), newest first, unpaginated.
    Otherwise → filtered page of `page_size` projects, newest first, with
    total = floor(matching / page_size).
"""

import logging
import secrets
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from civicbridge.config import settings
from civicbridge.constants import STATUS_TRANSITIONS, ProjectStatus
from civicbridge.exceptions import (
    ForbiddenError,
    InvalidStatusError,
    InvalidTransitionError,
    UnauthorizedError,
    ValidationError,
)
from civicbridge.models.application import Application
from civicbridge.models.project import Project
from civicbridge.models.user import User, bookmarks
from civicbridge.schemas.project import (
    ApplicationResponse,
    ProjectCreate,
    ProjectDetailResponse,
    ProjectResponse,
    ProjectSearchResponse,
    ProjectUpdate,
    as_utc,
)
from civicbridge.services.application_service import application_service
from civicbridge.services.common import execute, flush, get_project_or_404
from civicbridge.services.file_service import file_service
from civicbridge.services.notifier_base import StatusNotification
from civicbridge.services.query_validator import (
    construct_query,
    pick_recognized,
    validate_parameters,
)

logger = logging.getLogger(__name__)

# ProjectUpdate attribute → public field name
_PUBLIC_NAMES = {"date_from": "from", "date_to": "to"}

_ID_ATTEMPTS = 5


@dataclass
class Upload:
    """An attachment received with a multipart request."""

    filename: Optional[str]
    content_type: Optional[str]
    content: bytes


class ProjectService:
    """Persistence and rules for Project records."""

    # ── Identifiers ───────────────────────────────────────────────────────

    async def generate_id(self, db: AsyncSession) -> str:
        """Allocate a random project id that is not taken yet."""
        for _ in range(_ID_ATTEMPTS):
            candidate = secrets.token_hex(12)
            if await db.get(Project, candidate) is None:
                return candidate
        raise ValidationError(message="Could not allocate a project id. Please retry.")

    # ── Create / Read ─────────────────────────────────────────────────────

    async def create_project(
        self,
        db: AsyncSession,
        user: User,
        data: ProjectCreate,
        upload: Optional[Upload] = None,
    ) -> Project:
        """
        Create a project owned by `user`.

        Raises:
            ForbiddenError: the user is not a politician
            UnsupportedMediaTypeError / ValidationError: bad attachment
        """
        if not user.is_politician:
            raise ForbiddenError("Only politicians can create projects")

        project_id = await self.generate_id(db)
        project = Project(
            id=project_id,
            creator_id=user.id,
            status=ProjectStatus.OPEN.value,
            title=data.title,
            description=data.description,
            nature=data.nature,
            state=data.state,
            salary=data.salary,
            questions=list(data.questions),
            topic=data.topic,
        )
        if data.date_from is not None:
            project.date_from = data.date_from
        project.date_to = data.date_to

        if upload is not None:
            project.file = await file_service.store(
                project_id, upload.filename, upload.content, upload.content_type
            )

        db.add(project)
        try:
            await flush(db, "create the project")
        except Exception:
            if upload is not None:
                await file_service.remove_project_dir(project_id)
            raise

        logger.info("Project created: id=%s creator=%s", project.id, user.id)
        return project

    async def get_project(self, db: AsyncSession, user: User, project_id: str) -> ProjectDetailResponse:
        """Return a project; its creator also receives the applications."""
        project = await get_project_or_404(db, project_id)
        detail = ProjectDetailResponse.model_validate(project)
        if project.is_created_by(user.id):
            applications = await application_service.list_for_project(db, project_id)
            detail.applications = [ApplicationResponse.model_validate(a) for a in applications]
        return detail

    async def latest(self, db: AsyncSession, limit: Optional[int] = None) -> List[Project]:
        result = await db.execute(
            select(Project)
            .order_by(Project.created_at.desc(), Project.id.desc())
            .limit(limit or settings.latest_projects_limit)
        )
        return list(result.scalars().all())

    # ── Update / Delete ───────────────────────────────────────────────────

    async def update_project(
        self,
        db: AsyncSession,
        user: User,
        project_id: str,
        data: ProjectUpdate,
        upload: Optional[Upload] = None,
    ) -> Dict[str, Any]:
        """
        Apply a partial update; return the fields that changed.

        Only the fields present in the payload are touched. A new attachment
        replaces the previous one; without an upload the current file stays.

        Raises:
            NotFoundError, UnauthorizedError, ValidationError
        """
        project = await get_project_or_404(db, project_id)
        if not project.is_created_by(user.id):
            raise UnauthorizedError("Only the creator of the project can modify it.")

        changes: Dict[str, Any] = {}
        for attr in sorted(data.model_fields_set):
            value = getattr(data, attr)
            if attr == "title" and value is None:
                raise ValidationError(message="title: must not be empty", field="title")
            if attr in ("nature", "salary", "topic", "questions", "date_from") and value is None:
                # Required columns keep their value when sent empty
                continue
            changes[attr] = value

        date_from = as_utc(changes.get("date_from", project.date_from))
        date_to = as_utc(changes.get("date_to", project.date_to))
        if date_from and date_to and not date_from < date_to:
            raise ValidationError(message="'from' must be before 'to'", field="to")

        for attr, value in changes.items():
            setattr(project, attr, list(value) if isinstance(value, list) else value)

        response = {_PUBLIC_NAMES.get(attr, attr): value for attr, value in changes.items()}

        replaced = None
        if upload is not None:
            stored = await file_service.store(
                project_id, upload.filename, upload.content, upload.content_type
            )
            if project.file and project.file != stored:
                replaced = project.file
            project.file = stored
            response["file"] = stored

        await flush(db, "update the project")
        if replaced:
            await file_service.remove_file(project_id, replaced)
        logger.info("Project updated: id=%s fields=%s", project_id, sorted(response))
        return response

    async def delete_project(self, db: AsyncSession, user: User, project_id: str) -> None:
        """Delete a project with its applications, bookmarks and attachment."""
        project = await get_project_or_404(db, project_id)
        if not project.is_created_by(user.id):
            raise UnauthorizedError("Only creator of the project can delete it.")

        await execute(
            db,
            delete(Application).where(Application.project_id == project_id),
            "delete the project's applications",
        )
        await execute(
            db,
            delete(bookmarks).where(bookmarks.c.project_id == project_id),
            "delete the project's bookmarks",
        )
        await db.delete(project)
        await flush(db, "delete the project")
        await file_service.remove_project_dir(project_id)
        logger.info("Project deleted: id=%s by=%s", project_id, user.id)

    # ── Lifecycle ─────────────────────────────────────────────────────────

    async def set_status(
        self,
        db: AsyncSession,
        user: User,
        project_id: str,
        target_status: str,
    ) -> Tuple[Project, List[StatusNotification]]:
        """
        Move a project along its lifecycle.

        Checks, in order: project exists, user is the creator, target is a
        known status, (current → target) is an allowed transition.

        Returns:
            The updated project and one notification per applicant.
        """
        project = await get_project_or_404(db, project_id)
        if not project.is_created_by(user.id):
            raise UnauthorizedError("Only creator of the project can open / close it")

        try:
            target = ProjectStatus(target_status)
        except ValueError:
            raise InvalidStatusError(target_status, [s.value for s in ProjectStatus])

        current = ProjectStatus(project.status)
        if target not in STATUS_TRANSITIONS[current]:
            raise InvalidTransitionError(current.value, target.value)

        project.status = target.value
        await flush(db, "change the project status")
        await db.refresh(project)
        logger.info("Project %s status: %s → %s", project_id, current.value, target.value)

        applicants = await application_service.applicants_for_project(db, project_id)
        notifications = [
            StatusNotification(
                recipient_id=applicant.id,
                recipient_username=applicant.username,
                recipient_email=applicant.email,
                project_id=project.id,
                project_title=project.title,
                status=target.value,
            )
            for applicant in applicants
        ]
        return project, notifications

    # ── Search ────────────────────────────────────────────────────────────

    async def list_created(self, db: AsyncSession, user: User) -> List[Project]:
        result = await db.execute(
            select(Project)
            .where(Project.creator_id == user.id)
            .order_by(Project.created_at.desc(), Project.id.desc())
        )
        return list(result.scalars().all())

    async def list_applied(self, db: AsyncSession, user: User) -> List[Project]:
        result = await db.execute(
            select(Project)
            .join(Application, Application.project_id == Project.id)
            .where(Application.applicant_id == user.id)
            .order_by(Project.created_at.desc(), Project.id.desc())
        )
        return list(result.scalars().all())

    async def search(
        self,
        db: AsyncSession,
        user: User,
        raw_params: Mapping[str, Any],
    ) -> Union[ProjectSearchResponse, List[ProjectResponse]]:
        """
        Search projects or list the caller's own ones.

        Raises:
            InvalidQueryError: a recognized parameter is malformed
        """
        params = pick_recognized(raw_params)
        if not params:
            if user.is_politician:
                projects = await self.list_created(db, user)
            else:
                projects = await self.list_applied(db, user)
            return [ProjectResponse.model_validate(p) for p in projects]

        filters = validate_parameters(params)
        clauses = construct_query(filters)
        page_size = settings.page_size

        counted = await execute(
            db,
            select(func.count()).select_from(Project).where(*clauses),
            "count matching projects",
        )
        matching = counted.scalar_one()
        result = await execute(
            db,
            select(Project)
            .where(*clauses)
            .order_by(Project.created_at.desc(), Project.id.desc())
            .offset((filters.page - 1) * page_size)
            .limit(page_size),
            "search projects",
        )
        results = [ProjectResponse.model_validate(p) for p in result.scalars().all()]
        return ProjectSearchResponse(results=results, total=(matching or 0) // page_size)


project_service = ProjectService()
