"""
CivicBridge Backend: Project & Application Schemas
==================================================

What:  Pydantic models defining the API contract for projects, search,
       applications and bookmarks.
How:   Request models validate multipart form fields and query strings before
       anything reaches the database; response models serialize ORM objects
       (`from_attributes`) with the public field names (`from`, `to`,
       `creator`, `applicant`, `project`).
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Type, TypeVar, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError as PydanticValidationError,
    field_validator,
    model_validator,
)

from civicbridge.constants import GERMAN_STATES, PROJECT_NATURES, ProjectStatus
from civicbridge.exceptions import ValidationError

PayloadModel = TypeVar("PayloadModel", bound=BaseModel)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes as UTC; convert aware ones to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def validate_payload(
    model: Type[PayloadModel],
    data: Mapping[str, Any],
    error_cls: Type[ValidationError] = ValidationError,
) -> PayloadModel:
    """
    Validate untrusted input against a schema, raising our own 400 error.

    The first pydantic error becomes the message; the full list (without the
    raw input values) is attached as details.
    """
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        errors = e.errors(include_url=False, include_context=False, include_input=False)
        first = errors[0]
        field = ".".join(str(part) for part in first["loc"]) or None
        raise error_cls(
            message=f"{field}: {first['msg']}" if field else first["msg"],
            field=field,
            context={"errors": errors},
        )


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class _ProjectFields(BaseModel):
    """Validators shared by the create and update payloads."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    @field_validator("nature", check_fields=False)
    @classmethod
    def validate_nature(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and v not in PROJECT_NATURES:
            raise ValueError(f"must be one of: {', '.join(PROJECT_NATURES)}")
        return v

    @field_validator("state", check_fields=False)
    @classmethod
    def validate_state(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and v not in GERMAN_STATES:
            raise ValueError("must be a German federal state")
        return v

    @field_validator("date_from", "date_to", check_fields=False)
    @classmethod
    def normalize_dates(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_utc(v)

    @field_validator("topic", "questions", check_fields=False)
    @classmethod
    def strip_entries(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        if v is None:
            return v
        return [entry.strip() for entry in v if entry and entry.strip()]


class ProjectCreate(_ProjectFields):
    """Fields accepted by POST /projects/ (multipart form)."""

    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    date_from: Optional[datetime] = Field(default=None, alias="from")
    date_to: Optional[datetime] = Field(default=None, alias="to")
    nature: str = PROJECT_NATURES[0]
    state: Optional[str] = None
    topic: List[str] = Field(default_factory=list)
    salary: float = Field(default=0, ge=0)
    questions: List[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_date_range(self) -> "ProjectCreate":
        if self.date_from and self.date_to and not self.date_from < self.date_to:
            raise ValueError("'from' must be before 'to'")
        return self


class ProjectUpdate(_ProjectFields):
    """
    Partial update for POST /projects/{id}.

    Only the keys present in `model_fields_set` are applied; the date range
    is re-checked by ProjectService against the stored values.
    """

    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    date_from: Optional[datetime] = Field(default=None, alias="from")
    date_to: Optional[datetime] = Field(default=None, alias="to")
    nature: Optional[str] = None
    state: Optional[str] = None
    topic: Optional[List[str]] = None
    salary: Optional[float] = Field(default=None, ge=0)
    questions: Optional[List[str]] = None


class SearchFilters(BaseModel):
    """
    Typed form of the recognized search query parameters.

    tags: comma-separated and/or repeated parameter
    salary: minimum salary (inclusive)
    from: earliest project start (inclusive)
    page: 1-indexed page number
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    status: Optional[ProjectStatus] = None
    nature: Optional[str] = None
    tags: Optional[List[str]] = None
    salary: Optional[float] = Field(default=None, ge=0)
    date_from: Optional[datetime] = Field(default=None, alias="from")
    page: int = Field(default=1, ge=1, le=10_000_000)

    @field_validator("nature")
    @classmethod
    def validate_nature(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and v not in PROJECT_NATURES:
            raise ValueError(f"must be one of: {', '.join(PROJECT_NATURES)}")
        return v

    @field_validator("tags", mode="before")
    @classmethod
    def split_tags(cls, v: Any) -> Any:
        if v is None:
            return v
        values = [v] if isinstance(v, str) else v
        if not isinstance(values, list):
            return v
        tags = [tag.strip() for value in values for tag in str(value).split(",") if tag.strip()]
        if not tags:
            raise ValueError("at least one tag is required")
        return tags

    @field_validator("date_from")
    @classmethod
    def normalize_date(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_utc(v)


class ApplyRequest(BaseModel):
    """
    Body of POST /projects/apply/{id}.

    answers: mapping question → answer, or a list aligned with the project's
    questions.
    """

    answers: Optional[Union[Dict[str, str], List[str]]] = None


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class ApplicationResponse(BaseModel):
    id: uuid.UUID
    applicant: str = Field(validation_alias=AliasChoices("applicant_id", "applicant"))
    project: str = Field(validation_alias=AliasChoices("project_id", "project"))
    answers: Dict[str, str] = Field(default_factory=dict)
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ApplicationToggleResponse(ApplicationResponse):
    """Returned by the apply toggle: message is 'applied' or 'removed'."""

    message: str


class ProjectResponse(BaseModel):
    """Full public representation of a project."""

    id: str
    title: str
    description: Optional[str] = None
    status: ProjectStatus
    file: Optional[str] = None
    creator: str = Field(validation_alias=AliasChoices("creator_id", "creator"))
    date_from: datetime = Field(
        validation_alias=AliasChoices("date_from", "from"),
        serialization_alias="from",
    )
    date_to: Optional[datetime] = Field(
        default=None,
        validation_alias=AliasChoices("date_to", "to"),
        serialization_alias="to",
    )
    nature: str
    state: Optional[str] = None
    topic: List[str] = Field(default_factory=list)
    salary: float
    questions: List[str] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ProjectDetailResponse(ProjectResponse):
    """GET /projects/{id}: applications are filled in only for the creator."""

    applications: Optional[List[ApplicationResponse]] = None


class ProjectSearchResponse(BaseModel):
    """
    One page of search results.

    total: floor(matching projects / page size)
    """

    results: List[ProjectResponse]
    total: int


class MessageResponse(BaseModel):
    message: str


class DeletedResponse(BaseModel):
    status: str = "deleted"
