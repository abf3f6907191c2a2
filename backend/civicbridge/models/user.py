"""
CivicBridge Backend: User Model
===============================

What:  Local mirror of the accounts authenticated by the upstream gateway.
How:   The gateway owns registration and login; this table stores only what
       the project workflows need (role flag, contact address, bookmarks).

Bookmarks are a plain association table keyed by (user_id, project_id), so
the toggle in BookmarkService is a single existence check plus an insert or
delete.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, Table, text
from sqlalchemy.orm import Mapped, mapped_column

from civicbridge.database import Base


bookmarks = Table(
    "bookmarks",
    Base.metadata,
    Column("user_id", String(64), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("project_id", String(32), ForeignKey("projects.id", ondelete="CASCADE"), primary_key=True),
    Column(
        "created_at",
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    ),
)


class User(Base):
    """
    A politician or a student.

    `is_politician` decides the role: politicians create and manage projects,
    students apply to and bookmark them.
    """

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(
        String(64),
        primary_key=True,
        comment="Identifier issued by the authentication gateway",
    )
    username: Mapped[str] = mapped_column(String(150), nullable=False, unique=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    is_politician: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=text("false"),
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self) -> str:
        role = "politician" if self.is_politician else "student"
        return f"<User(id={self.id}, username='{self.username}', role={role})>"
