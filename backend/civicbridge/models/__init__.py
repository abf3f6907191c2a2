"""ORM models. Importing this package registers every table on Base.metadata."""

from civicbridge.models.user import User, bookmarks
from civicbridge.models.project import Project, ProjectTopic
from civicbridge.models.application import Application

__all__ = ["User", "bookmarks", "Project", "ProjectTopic", "Application"]
