"""create tasks core tables

Revision ID: 0001_tasks_core
Revises:
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa

revision = "0001_tasks_core"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "CreatedAt",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.current_timestamp(),
        ),
        sa.Column(
            "UpdatedAt",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.current_timestamp(),
        ),
    ]


def upgrade() -> None:
    if op.get_bind().dialect.name == "mssql":
        op.execute(
            "IF NOT EXISTS (SELECT * FROM sys.schemas WHERE name = 'tasks') EXEC('CREATE SCHEMA tasks')"
        )

    op.create_table(
        "projects",
        sa.Column("Id", sa.Integer(), primary_key=True),
        sa.Column("Name", sa.String(length=200), nullable=False),
        sa.Column("World", sa.String(length=80), nullable=True),
        sa.Column("Importance", sa.String(length=40), nullable=False, server_default="normal"),
        *_timestamps(),
        schema="tasks",
    )
    op.create_index("ix_tasks_projects_importance", "projects", ["Importance"], schema="tasks")

    op.create_table(
        "todos",
        sa.Column("Id", sa.Integer(), primary_key=True),
        sa.Column("Title", sa.String(length=200), nullable=False),
        sa.Column("Description", sa.Text(), nullable=True),
        sa.Column("Category", sa.String(length=80), nullable=True),
        sa.Column("ProjectId", sa.Integer(), nullable=True),
        sa.Column("IsLong", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("IsSoon", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("TrackingUrl", sa.String(length=500), nullable=True),
        sa.Column("PurchaseUrl", sa.String(length=500), nullable=True),
        sa.Column("Price", sa.Float(), nullable=True),
        sa.Column("WishListCategory", sa.String(length=80), nullable=True),
        sa.Column("DueDate", sa.Date(), nullable=True),
        sa.Column("DisplayDate", sa.Date(), nullable=True),
        sa.Column("DisplayDateOffset", sa.Integer(), nullable=True),
        sa.Column("IsCompleted", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("CompletedAt", sa.DateTime(timezone=True), nullable=True),
        sa.Column("IsRecurring", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("RecurrenceType", sa.String(length=30), nullable=False, server_default="none"),
        sa.Column("RecurrenceInterval", sa.Integer(), nullable=True),
        sa.Column("RecurrenceDayOfWeek", sa.Integer(), nullable=True),
        sa.Column("RecurrenceDayOfMonth", sa.Integer(), nullable=True),
        sa.Column("RecurrenceWeekOfMonth", sa.Integer(), nullable=True),
        sa.Column("RecurrenceDayOfWeekMonthly", sa.Integer(), nullable=True),
        sa.Column("RecurrenceMonth", sa.Integer(), nullable=True),
        sa.Column("WorkSessions", sa.Text(), nullable=True),
        *_timestamps(),
        schema="tasks",
    )
    op.create_index("ix_tasks_todos_project_id", "todos", ["ProjectId"], schema="tasks")
    op.create_index(
        "ix_tasks_todos_completed_display", "todos", ["IsCompleted", "DisplayDate"], schema="tasks"
    )
    op.create_index("ix_tasks_todos_soon", "todos", ["IsSoon"], schema="tasks")

    op.create_table(
        "system_settings",
        sa.Column("Id", sa.Integer(), primary_key=True),
        sa.Column("Title", sa.String(length=120), nullable=False),
        sa.Column("Value", sa.String(length=500), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("Title", name="uq_tasks_system_settings_title"),
        schema="tasks",
    )


def downgrade() -> None:
    op.drop_table("system_settings", schema="tasks")

    op.drop_index("ix_tasks_todos_soon", table_name="todos", schema="tasks")
    op.drop_index("ix_tasks_todos_completed_display", table_name="todos", schema="tasks")
    op.drop_index("ix_tasks_todos_project_id", table_name="todos", schema="tasks")
    op.drop_table("todos", schema="tasks")

    op.drop_index("ix_tasks_projects_importance", table_name="projects", schema="tasks")
    op.drop_table("projects", schema="tasks")
