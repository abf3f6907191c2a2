"""
CivicBridge Backend: Application Model
======================================

What:  A student's submission to a project, with answers keyed by question.
How:   The (applicant_id, project_id) unique constraint backs the
       apply/withdraw toggle: a racing duplicate insert fails at flush time
       instead of creating a second row.
"""

import uuid
from datetime import datetime, timezone
from typing import Dict

from sqlalchemy import JSON, DateTime, ForeignKey, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from civicbridge.database import Base


class Application(Base):
    __tablename__ = "applications"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    applicant_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    project_id: Mapped[str] = mapped_column(
        String(32),
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    # question text → answer text
    answers: Mapped[Dict[str, str]] = mapped_column(JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        UniqueConstraint("applicant_id", "project_id", name="uq_applications_applicant_project"),
    )

    def __repr__(self) -> str:
        return (
            f"<Application(id={self.id}, applicant='{self.applicant_id}', "
            f"project='{self.project_id}')>"
        )
