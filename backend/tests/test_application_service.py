"""
CivicBridge Backend: Application Service Tests
==============================================

The apply endpoint is a toggle: the first call creates an application,
the second removes it. Every project question needs an answer.
"""

import pytest
import pytest_asyncio

from civicbridge.exceptions import MissingAnswersError, NotFoundError, UnauthorizedError
from civicbridge.schemas.project import ProjectCreate
from civicbridge.services.application_service import (
    application_service,
    missing_answers,
    normalize_answers,
)
from civicbridge.services.project_service import project_service


class TestAnswerHelpers:

    def test_mapping_is_kept(self):
        assert normalize_answers(["Why?"], {"Why?": "Because"}) == {"Why?": "Because"}

    def test_list_is_matched_by_position(self):
        assert normalize_answers(["Why?", "When?"], ["Because", "Now", "extra"]) == {
            "Why?": "Because",
            "When?": "Now",
        }

    def test_nothing_given(self):
        assert normalize_answers(["Why?"], None) == {}

    def test_missing_answers(self):
        assert missing_answers(["Why?", "When?"], {"Why?": "Because"}) == ["When?"]
        assert missing_answers([], {}) == []


class TestToggleApplication:

    @pytest_asyncio.fixture
    async def project(self, db_session, users):
        return await project_service.create_project(
            db_session, users["politician"], ProjectCreate(title="Survey", questions=["Why?"])
        )

    @pytest.mark.asyncio
    async def test_apply_then_withdraw(self, db_session, users, project):
        applied, created = await application_service.toggle_application(
            db_session, users["student"], project.id, {"Why?": "Because"}
        )
        assert created is True
        assert applied.message == "applied"
        assert applied.applicant == "stu-1"
        assert applied.project == project.id
        assert applied.answers == {"Why?": "Because"}

        removed, created = await application_service.toggle_application(
            db_session, users["student"], project.id
        )
        assert created is False
        assert removed.message == "removed"
        assert removed.id == applied.id
        assert await application_service.find(db_session, "stu-1", project.id) is None

    @pytest.mark.asyncio
    async def test_missing_answer(self, db_session, users, project):
        with pytest.raises(MissingAnswersError) as exc_info:
            await application_service.toggle_application(db_session, users["student"], project.id, {})
        assert exc_info.value.context["missing"] == ["Why?"]
        assert exc_info.value.status_code == 400

    @pytest.mark.asyncio
    async def test_withdraw_does_not_need_answers(self, db_session, users, project):
        await application_service.toggle_application(
            db_session, users["student"], project.id, ["Because"]
        )
        _, created = await application_service.toggle_application(
            db_session, users["student"], project.id, None
        )
        assert created is False

    @pytest.mark.asyncio
    async def test_politician_cannot_apply(self, db_session, users, project):
        with pytest.raises(UnauthorizedError, match="politicians cannot apply"):
            await application_service.toggle_application(
                db_session, users["other_politician"], project.id, {"Why?": "x"}
            )

    @pytest.mark.asyncio
    async def test_unknown_project(self, db_session, users):
        with pytest.raises(NotFoundError):
            await application_service.toggle_application(db_session, users["student"], "doesnotexist")

    @pytest.mark.asyncio
    async def test_applicants_listed_for_project(self, db_session, users, project):
        await application_service.toggle_application(db_session, users["student"], project.id, {"Why?": "a"})
        await application_service.toggle_application(
            db_session, users["other_student"], project.id, {"Why?": "b"}
        )

        applicants = await application_service.applicants_for_project(db_session, project.id)
        applications = await application_service.list_for_project(db_session, project.id)

        assert sorted(u.username for u in applicants) == ["clara", "david"]
        assert len(applications) == 2
