"""Create users, projects, project_topics, applications and bookmarks

Revision ID: 001
Revises: None
Create Date: 2026-10-17 00:00:00.000000+00:00

Rollback: downgrade() drops all five tables (destructive).
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(64), nullable=False,
                  comment="Identifier issued by the authentication gateway"),
        sa.Column("username", sa.String(150), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("is_politician", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), nullable=False,
                  server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
        sa.UniqueConstraint("username", name="uq_users_username"),
    )

    op.create_table(
        "projects",
        sa.Column("id", sa.String(32), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'open'"),
                  comment="open, closed or completed"),
        sa.Column("file", sa.String(255), nullable=True,
                  comment="Attachment name inside <storage_root>/projects/<id>/"),
        sa.Column("creator_id", sa.String(64), nullable=False),
        sa.Column("date_from", sa.TIMESTAMP(timezone=True), nullable=False,
                  server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.Column("date_to", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("nature", sa.String(50), nullable=False, server_default=sa.text("'project'")),
        sa.Column("state", sa.String(50), nullable=True),
        sa.Column("salary", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("questions", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), nullable=False,
                  server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.Column("updated_at", sa.TIMESTAMP(timezone=True), nullable=False,
                  server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.PrimaryKeyConstraint("id", name="pk_projects"),
        sa.ForeignKeyConstraint(["creator_id"], ["users.id"], ondelete="CASCADE",
                                name="fk_projects_creator_id_users"),
    )
    op.create_index("ix_projects_creator_id", "projects", ["creator_id"])
    op.create_index("idx_projects_created_at", "projects", [sa.text("created_at DESC")])

    op.create_table(
        "project_topics",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("project_id", sa.String(32), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_project_topics"),
        sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE",
                                name="fk_project_topics_project_id_projects"),
        sa.UniqueConstraint("project_id", "name", name="uq_project_topics_project_name"),
    )
    op.create_index("ix_project_topics_project_id", "project_topics", ["project_id"])

    op.create_table(
        "applications",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("applicant_id", sa.String(64), nullable=False),
        sa.Column("project_id", sa.String(32), nullable=False),
        sa.Column("answers", sa.JSON(), nullable=False,
                  comment="Question → answer mapping"),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), nullable=False,
                  server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.PrimaryKeyConstraint("id", name="pk_applications"),
        sa.ForeignKeyConstraint(["applicant_id"], ["users.id"], ondelete="CASCADE",
                                name="fk_applications_applicant_id_users"),
        sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE",
                                name="fk_applications_project_id_projects"),
        sa.UniqueConstraint("applicant_id", "project_id", name="uq_applications_applicant_project"),
    )
    op.create_index("ix_applications_applicant_id", "applications", ["applicant_id"])
    op.create_index("ix_applications_project_id", "applications", ["project_id"])

    op.create_table(
        "bookmarks",
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("project_id", sa.String(32), nullable=False),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), nullable=False,
                  server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.PrimaryKeyConstraint("user_id", "project_id", name="pk_bookmarks"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE",
                                name="fk_bookmarks_user_id_users"),
        sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE",
                                name="fk_bookmarks_project_id_projects"),
    )


def downgrade() -> None:
    op.drop_table("bookmarks")
    op.drop_index("ix_applications_project_id", table_name="applications")
    op.drop_index("ix_applications_applicant_id", table_name="applications")
    op.drop_table("applications")
    op.drop_index("ix_project_topics_project_id", table_name="project_topics")
    op.drop_table("project_topics")
    op.drop_index("idx_projects_created_at", table_name="projects")
    op.drop_index("ix_projects_creator_id", table_name="projects")
    op.drop_table("projects")
    op.drop_table("users")
