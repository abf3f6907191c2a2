"""
CivicBridge Backend: Application Store
======================================

What:  Students applying to (and withdrawing from) projects.
How:   `toggle_application` is check-then-act against the database: an
       existing application for the (student, project) pair is removed,
       otherwise a new one is created after checking the answers cover every
       project question.
Who:   Called by POST /projects/apply/{id}; ProjectService uses the read
       helpers for the creator view and for status notifications.
"""

import logging
from typing import Dict, List, Optional, Sequence, Tuple, Union

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from civicbridge.exceptions import MissingAnswersError, UnauthorizedError
from civicbridge.models.application import Application
from civicbridge.models.user import User
from civicbridge.schemas.project import ApplicationToggleResponse
from civicbridge.services.common import flush, get_project_or_404

logger = logging.getLogger(__name__)

RawAnswers = Optional[Union[Dict[str, str], List[str]]]


def normalize_answers(questions: Sequence[str], answers: RawAnswers) -> Dict[str, str]:
    """
    Produce the stored question → answer mapping.

    A list is matched to the questions by position; surplus entries are
    dropped and missing positions stay unanswered.
    """
    if not answers:
        return {}
    if isinstance(answers, list):
        return dict(zip(questions, answers))
    return dict(answers)


def missing_answers(questions: Sequence[str], answers: Dict[str, str]) -> List[str]:
    return [question for question in questions if question not in answers]


class ApplicationService:
    """Persistence and rules for Application records."""

    async def find(self, db: AsyncSession, applicant_id: str, project_id: str) -> Optional[Application]:
        result = await db.execute(
            select(Application).where(
                Application.applicant_id == applicant_id,
                Application.project_id == project_id,
            )
        )
        return result.scalar_one_or_none()

    async def toggle_application(
        self,
        db: AsyncSession,
        user: User,
        project_id: str,
        answers: RawAnswers = None,
    ) -> Tuple[ApplicationToggleResponse, bool]:
        """
        Apply to a project, or withdraw an existing application.

        Returns:
            (application payload, created) where created is False for a
            withdrawal.

        Raises:
            UnauthorizedError: the user is a politician
            NotFoundError: the project does not exist
            MissingAnswersError: a declared question has no answer
        """
        if user.is_politician:
            raise UnauthorizedError("politicians cannot apply for projects")

        project = await get_project_or_404(db, project_id)

        existing = await self.find(db, user.id, project_id)
        if existing is not None:
            payload = ApplicationToggleResponse.model_validate(
                {**_as_dict(existing), "message": "removed"}
            )
            await db.delete(existing)
            await flush(db, "withdraw the application")
            logger.info("Application withdrawn: user=%s project=%s", user.id, project_id)
            return payload, False

        questions = list(project.questions or [])
        normalized = normalize_answers(questions, answers)
        missing = missing_answers(questions, normalized)
        if missing:
            raise MissingAnswersError(missing)

        application = Application(
            applicant_id=user.id,
            project_id=project_id,
            answers=normalized,
        )
        db.add(application)
        await flush(db, "submit the application")
        logger.info("Application submitted: user=%s project=%s", user.id, project_id)

        payload = ApplicationToggleResponse.model_validate(
            {**_as_dict(application), "message": "applied"}
        )
        return payload, True

    async def list_for_project(self, db: AsyncSession, project_id: str) -> List[Application]:
        result = await db.execute(
            select(Application)
            .where(Application.project_id == project_id)
            .order_by(Application.created_at.desc())
        )
        return list(result.scalars().all())

    async def applicants_for_project(self, db: AsyncSession, project_id: str) -> List[User]:
        result = await db.execute(
            select(User)
            .join(Application, Application.applicant_id == User.id)
            .where(Application.project_id == project_id)
        )
        return list(result.scalars().all())


def _as_dict(application: Application) -> Dict[str, object]:
    return {
        "id": application.id,
        "applicant": application.applicant_id,
        "project": application.project_id,
        "answers": application.answers or {},
        "created_at": application.created_at,
    }


application_service = ApplicationService()
