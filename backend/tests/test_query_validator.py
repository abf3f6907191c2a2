"""
CivicBridge Backend: Search Query Validation Tests
==================================================

Covers pick_recognized (key filtering), validate_parameters (typing and
InvalidQueryError) and construct_query (one clause per filter).
"""

from datetime import datetime, timezone

import pytest

from civicbridge.constants import ProjectStatus
from civicbridge.exceptions import InvalidQueryError
from civicbridge.services.query_validator import (
    construct_query,
    pick_recognized,
    validate_parameters,
)


class TestPickRecognized:

    def test_drops_unknown_keys(self):
        raw = {"title": "park", "sort": "asc", "page": "2", "token": "x"}
        assert pick_recognized(raw) == {"title": "park", "page": "2"}

    def test_nothing_recognized(self):
        assert pick_recognized({"foo": "bar"}) == {}


class TestValidateParameters:

    def test_full_parameter_set(self):
        filters = validate_parameters({
            "title": "park",
            "status": "open",
            "nature": "internship",
            "tags": ["green", "urban,mobility"],
            "salary": "450.5",
            "from": "2024-03-01T00:00:00",
            "page": "3",
        })

        assert filters.title == "park"
        assert filters.status is ProjectStatus.OPEN
        assert filters.nature == "internship"
        assert filters.tags == ["green", "urban", "mobility"]
        assert filters.salary == 450.5
        assert filters.date_from == datetime(2024, 3, 1, tzinfo=timezone.utc)
        assert filters.page == 3

    def test_page_defaults_to_one(self):
        assert validate_parameters({"title": "park"}).page == 1

    def test_single_tag_string(self):
        assert validate_parameters({"tags": "green"}).tags == ["green"]

    @pytest.mark.parametrize(
        "params",
        [
            {"status": "archived"},
            {"nature": "party"},
            {"salary": "lots"},
            {"salary": "-1"},
            {"page": "0"},
            {"page": "two"},
            {"page": "99999999999999999999"},
            {"from": "not-a-date"},
            {"title": ""},
            {"tags": " , "},
        ],
    )
    def test_invalid_values(self, params):
        with pytest.raises(InvalidQueryError) as exc_info:
            validate_parameters(params)
        assert exc_info.value.status_code == 400
        assert exc_info.value.error_code == "invalid_query"


class TestConstructQuery:

    def test_page_only_builds_no_clause(self):
        assert construct_query(validate_parameters({"page": "2"})) == []

    def test_one_clause_per_filter(self):
        filters = validate_parameters({
            "title": "park",
            "status": "closed",
            "nature": "thesis",
            "tags": "green",
            "salary": "100",
            "from": "2024-01-01T00:00:00",
        })
        assert len(construct_query(filters)) == 6

    def test_title_clause_is_case_insensitive_and_escaped(self):
        clause = construct_query(validate_parameters({"title": "50%_off"}))[0]
        compiled = str(clause.compile(compile_kwargs={"literal_binds": True}))

        assert "lower(" in compiled.lower()
        assert "ESCAPE" in compiled
