"""
CivicBridge Backend: Search Query Validation
============================================

What:  Turns untrusted query parameters into SQLAlchemy filter clauses.
How:   Three steps, each usable on its own:
         pick_recognized()     → keep only the keys the search understands
         validate_parameters() → typed SearchFilters or InvalidQueryError
         construct_query()     → WHERE clauses for ProjectService.search()

Filter semantics:
    title    case-insensitive substring, LIKE wildcards in the input escaped
    status   exact match
    nature   exact match
    tags     project has at least one of the tags
    salary   salary >= value
    from     project start >= value
    page     pagination only, produces no clause
"""

from typing import Any, Dict, List, Mapping

from sqlalchemy import ColumnElement

from civicbridge.constants import SEARCH_PARAMS
from civicbridge.exceptions import InvalidQueryError
from civicbridge.models.project import Project, ProjectTopic
from civicbridge.schemas.project import SearchFilters, validate_payload


def pick_recognized(raw_params: Mapping[str, Any]) -> Dict[str, Any]:
    return {key: raw_params[key] for key in SEARCH_PARAMS if key in raw_params}


def validate_parameters(params: Mapping[str, Any]) -> SearchFilters:
    return validate_payload(SearchFilters, params, error_cls=InvalidQueryError)


def construct_query(filters: SearchFilters) -> List[ColumnElement[bool]]:
    clauses: List[ColumnElement[bool]] = []
    if filters.title is not None:
        clauses.append(Project.title.icontains(filters.title, autoescape=True))
    if filters.status is not None:
        clauses.append(Project.status == filters.status.value)
    if filters.nature is not None:
        clauses.append(Project.nature == filters.nature)
    if filters.tags:
        clauses.append(Project.topic_entries.any(ProjectTopic.name.in_(filters.tags)))
    if filters.salary is not None:
        clauses.append(Project.salary >= filters.salary)
    if filters.date_from is not None:
        clauses.append(Project.date_from >= filters.date_from)
    return clauses
