"""
CivicBridge Backend: Project Route Handlers
===========================================

What:  The /projects HTTP surface: CRUD, search, lifecycle, applications,
       bookmarks and attachment download.
How:   Handlers parse the request (multipart form, query string, JSON body),
       call the matching service and pick the status code. Rules live in the
       services.
Who:   Called by the student and politician frontends.

Route order matters: fixed paths (/latest, /apply/..., /bookmark/...) are
declared before the catch-all /{project_id} routes.
"""

import json
import logging
import mimetypes
from typing import Any, Dict, List, Optional, Union

from fastapi import APIRouter, BackgroundTasks, Depends, Request, Response
from fastapi.responses import FileResponse
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.datastructures import FormData, UploadFile

from civicbridge.auth import get_current_user
from civicbridge.constants import MUTABLE_FIELDS, ProjectStatus
from civicbridge.database import get_db_session
from civicbridge.exceptions import ValidationError
from civicbridge.models.user import User
from civicbridge.schemas.common import ErrorResponse
from civicbridge.schemas.project import (
    ApplicationToggleResponse,
    ApplyRequest,
    DeletedResponse,
    MessageResponse,
    ProjectCreate,
    ProjectDetailResponse,
    ProjectResponse,
    ProjectSearchResponse,
    ProjectUpdate,
    validate_payload,
)
from civicbridge.services.application_service import application_service
from civicbridge.services.bookmark_service import ADDED, bookmark_service
from civicbridge.services.file_service import file_service
from civicbridge.services.notification_service import notification_dispatcher
from civicbridge.services.project_service import Upload, project_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/projects", tags=["Projects"])

_ERRORS = {
    400: {"description": "Invalid input", "model": ErrorResponse},
    401: {"description": "Not allowed for this user", "model": ErrorResponse},
    404: {"description": "Project not found", "model": ErrorResponse},
}

_LIST_FIELDS = ("topic", "questions")


# ── Request parsing helpers ───────────────────────────────────────────────


def _list_field(form: FormData, key: str) -> List[str]:
    """
    Read a list field sent either as repeated form fields or as one JSON
    array string.
    """
    values = [value for value in form.getlist(key) if isinstance(value, str)]
    if len(values) == 1 and values[0].lstrip().startswith("["):
        try:
            parsed = json.loads(values[0])
        except json.JSONDecodeError:
            raise ValidationError(message=f"{key}: must be a JSON array of strings", field=key)
        if not isinstance(parsed, list):
            raise ValidationError(message=f"{key}: must be a JSON array of strings", field=key)
        return [str(item) for item in parsed]
    return values


def _form_payload(form: FormData) -> Dict[str, Any]:
    """Collect the editable project fields; anything else in the form is dropped."""
    payload: Dict[str, Any] = {}
    for key in MUTABLE_FIELDS:
        if key not in form:
            continue
        if key in _LIST_FIELDS:
            payload[key] = _list_field(form, key)
            continue
        value = form.get(key)
        if not isinstance(value, str):
            continue
        # Empty inputs mean "not provided", except for clearing the description
        if value == "" and key != "description":
            continue
        payload[key] = value
    return payload


async def _read_upload(form: FormData) -> Optional[Upload]:
    file = form.get("file")
    if not isinstance(file, UploadFile) or not file.filename:
        return None
    content = await file.read()
    return Upload(filename=file.filename, content_type=file.content_type, content=content)


def _raw_query(request: Request) -> Dict[str, Any]:
    params = request.query_params
    raw: Dict[str, Any] = {key: params.get(key) for key in params.keys()}
    if "tags" in params:
        raw["tags"] = params.getlist("tags")
    return raw


# ── Listing & search ──────────────────────────────────────────────────────


@router.get(
    "/latest",
    response_model=List[ProjectResponse],
    summary="Most recently created projects",
)
async def latest_projects(
    db: AsyncSession = Depends(get_db_session),
) -> List[ProjectResponse]:
    projects = await project_service.latest(db)
    return [ProjectResponse.model_validate(p) for p in projects]


@router.get(
    "/",
    response_model=Union[ProjectSearchResponse, List[ProjectResponse]],
    responses={400: _ERRORS[400], 401: _ERRORS[401]},
    summary="Search projects",
    description=(
        "With any of title, status, nature, tags, salary, from or page: a page of "
        "matching projects as {results, total}. Without them: the caller's own "
        "projects (politicians) or the projects they applied to (students)."
    ),
)
async def search_projects(
    request: Request,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> Union[ProjectSearchResponse, List[ProjectResponse]]:
    return await project_service.search(db, user, _raw_query(request))


# ── Create ────────────────────────────────────────────────────────────────


@router.post(
    "/",
    status_code=201,
    response_model=ProjectResponse,
    responses={
        400: _ERRORS[400],
        403: {"description": "Only politicians can create projects", "model": ErrorResponse},
    },
    summary="Create a project (multipart form, optional `file`)",
)
async def create_project(
    request: Request,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ProjectResponse:
    form = await request.form()
    data = validate_payload(ProjectCreate, _form_payload(form))
    upload = await _read_upload(form)
    project = await project_service.create_project(db, user, data, upload)
    return ProjectResponse.model_validate(project)


# ── Applications ──────────────────────────────────────────────────────────


@router.post(
    "/apply/{project_id}",
    response_model=ApplicationToggleResponse,
    responses={
        201: {"description": "Application submitted", "model": ApplicationToggleResponse},
        **_ERRORS,
    },
    summary="Apply to a project, or withdraw an existing application",
)
async def apply_to_project(
    project_id: str,
    response: Response,
    body: Optional[ApplyRequest] = None,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ApplicationToggleResponse:
    answers = body.answers if body is not None else None
    payload, created = await application_service.toggle_application(db, user, project_id, answers)
    response.status_code = 201 if created else 200
    return payload


# ── Lifecycle ─────────────────────────────────────────────────────────────


async def _change_status(
    db: AsyncSession,
    user: User,
    project_id: str,
    target: ProjectStatus,
    background_tasks: BackgroundTasks,
) -> ProjectResponse:
    project, notifications = await project_service.set_status(db, user, project_id, target.value)
    if notifications:
        background_tasks.add_task(notification_dispatcher.dispatch_status_change, notifications)
    return ProjectResponse.model_validate(project)


@router.post(
    "/open/{project_id}",
    response_model=ProjectResponse,
    responses=_ERRORS,
    summary="Open a project",
)
async def open_project(
    project_id: str,
    background_tasks: BackgroundTasks,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ProjectResponse:
    return await _change_status(db, user, project_id, ProjectStatus.OPEN, background_tasks)


@router.post(
    "/close/{project_id}",
    response_model=ProjectResponse,
    responses=_ERRORS,
    summary="Close an open project",
)
async def close_project(
    project_id: str,
    background_tasks: BackgroundTasks,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ProjectResponse:
    return await _change_status(db, user, project_id, ProjectStatus.CLOSED, background_tasks)


@router.post(
    "/complete/{project_id}",
    response_model=ProjectResponse,
    responses=_ERRORS,
    summary="Complete a closed project",
)
async def complete_project(
    project_id: str,
    background_tasks: BackgroundTasks,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ProjectResponse:
    return await _change_status(db, user, project_id, ProjectStatus.COMPLETED, background_tasks)


# ── Bookmarks ─────────────────────────────────────────────────────────────


@router.post(
    "/bookmark/{project_id}",
    response_model=MessageResponse,
    responses={
        201: {"description": "Bookmark added", "model": MessageResponse},
        401: _ERRORS[401],
        404: _ERRORS[404],
    },
    summary="Toggle a bookmark on a project",
)
async def bookmark_project(
    project_id: str,
    response: Response,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    outcome = await bookmark_service.toggle_bookmark(db, user, project_id)
    response.status_code = 201 if outcome == ADDED else 200
    return MessageResponse(message=f"bookmark {outcome}")


# ── Single project ────────────────────────────────────────────────────────


@router.get(
    "/{project_id}",
    response_model=ProjectDetailResponse,
    responses={401: _ERRORS[401], 404: _ERRORS[404]},
    summary="Get a project; its creator also sees the applications",
)
async def get_project(
    project_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ProjectDetailResponse:
    return await project_service.get_project(db, user, project_id)


@router.post(
    "/{project_id}",
    responses=_ERRORS,
    summary="Update a project (multipart form, only the sent fields change)",
)
async def update_project(
    project_id: str,
    request: Request,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> Dict[str, Any]:
    form = await request.form()
    data = validate_payload(ProjectUpdate, _form_payload(form))
    upload = await _read_upload(form)
    return await project_service.update_project(db, user, project_id, data, upload)


@router.delete(
    "/{project_id}",
    response_model=DeletedResponse,
    responses={401: _ERRORS[401], 404: _ERRORS[404]},
    summary="Delete a project with its applications, bookmarks and attachment",
)
async def delete_project(
    project_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> DeletedResponse:
    await project_service.delete_project(db, user, project_id)
    return DeletedResponse()


@router.get(
    "/{project_id}/{file_path:path}",
    responses={404: {"description": "File not found", "model": ErrorResponse}},
    summary="Download a project attachment",
)
async def serve_attachment(project_id: str, file_path: str) -> FileResponse:
    full_path = file_service.resolve(project_id, file_path)
    media_type, _ = mimetypes.guess_type(full_path.name)
    return FileResponse(
        path=str(full_path),
        media_type=media_type or "application/octet-stream",
        headers={"Cache-Control": "private, max-age=3600"},
    )
