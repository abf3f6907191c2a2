"""
Enumerations shared by models, schemas and services.
"""

import enum


class ProjectStatus(str, enum.Enum):
    OPEN = "open"
    CLOSED = "closed"
    COMPLETED = "completed"


# Lifecycle: open → closed → completed. Nothing is ever re-opened.
STATUS_TRANSITIONS = {
    ProjectStatus.OPEN: frozenset({ProjectStatus.CLOSED}),
    ProjectStatus.CLOSED: frozenset({ProjectStatus.COMPLETED}),
    ProjectStatus.COMPLETED: frozenset(),
}

# First entry is the default nature of a new project
PROJECT_NATURES = (
    "project",
    "internship",
    "thesis",
    "research",
    "volunteering",
)

GERMAN_STATES = (
    "Baden-Württemberg",
    "Bayern",
    "Berlin",
    "Brandenburg",
    "Bremen",
    "Hamburg",
    "Hessen",
    "Mecklenburg-Vorpommern",
    "Niedersachsen",
    "Nordrhein-Westfalen",
    "Rheinland-Pfalz",
    "Saarland",
    "Sachsen",
    "Sachsen-Anhalt",
    "Schleswig-Holstein",
    "Thüringen",
)

# Fields the creator may change through the update path. id, creator,
# status and file are handled elsewhere and dropped silently here.
MUTABLE_FIELDS = (
    "title",
    "description",
    "from",
    "to",
    "nature",
    "state",
    "topic",
    "salary",
    "questions",
)

# Query keys understood by the project search
SEARCH_PARAMS = ("title", "status", "nature", "tags", "salary", "from", "page")

ALLOWED_ATTACHMENT_TYPES = frozenset({
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/gif",
    "application/pdf",
})
