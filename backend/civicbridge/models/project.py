"""
CivicBridge Backend: Project Model
==================================

What:  ORM model for the `projects` table and its `project_topics` tags.
Who:   Used by ProjectService for CRUD, lifecycle and search; read by
       ApplicationService and BookmarkService for existence checks.

Table Design:
    - id: short random hex string allocated by ProjectService before insert
    - status: one of ProjectStatus, changed only through set_status()
    - file: blob name inside <storage_root>/projects/<id>/
    - date_from / date_to: exposed as `from` / `to` on the API
    - topic: one row per tag in project_topics so tag membership is a plain
      EXISTS subquery on every database backend
    - questions: ordered JSON list of prompts

    Index on created_at DESC serves both the search ordering and
    GET /projects/latest.
"""

from datetime import datetime, timezone
from typing import Iterable, List, Optional

from sqlalchemy import (
    JSON,
    DateTime,
    Float,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from civicbridge.constants import PROJECT_NATURES, ProjectStatus
from civicbridge.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ProjectTopic(Base):
    """A single free-text tag attached to a project."""

    __tablename__ = "project_topics"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    project_id: Mapped[str] = mapped_column(
        String(32),
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)

    __table_args__ = (
        UniqueConstraint("project_id", "name", name="uq_project_topics_project_name"),
    )


class Project(Base):
    """
    A unit of work posted by a politician.

    Lifecycle:
        1. Created by a politician (status = 'open')
        2. Edited by its creator through partial updates of MUTABLE_FIELDS
        3. Closed, then completed; each transition notifies all applicants
        4. Deleted by its creator together with applications and bookmarks
    """

    __tablename__ = "projects"

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=ProjectStatus.OPEN.value,
        server_default=text("'open'"),
    )
    file: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    creator_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    date_from: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
    )
    date_to: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    nature: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default=PROJECT_NATURES[0],
    )
    state: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    salary: Mapped[float] = mapped_column(
        Float,
        nullable=False,
        default=0,
        server_default=text("0"),
    )
    questions: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    )

    topic_entries: Mapped[List[ProjectTopic]] = relationship(
        ProjectTopic,
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by=ProjectTopic.id,
    )

    __table_args__ = (
        Index("idx_projects_created_at", created_at.desc()),
    )

    @property
    def topic(self) -> List[str]:
        return [entry.name for entry in self.topic_entries]

    @topic.setter
    def topic(self, names: Iterable[str]) -> None:
        # Duplicates collapse, first occurrence keeps its position
        self.topic_entries = [ProjectTopic(name=name) for name in dict.fromkeys(names)]

    def is_created_by(self, user_id: str) -> bool:
        return self.creator_id == user_id

    def __repr__(self) -> str:
        return f"<Project(id={self.id}, title='{self.title}', status='{self.status}')>"
