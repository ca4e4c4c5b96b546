"""create tasks table

Revision ID: 0001
Revises:
Create Date: 2026-10-16 00:00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

SEED_TASKS = [
    ("Learn Docker", "Understand containerization and Docker basics", True),
    ("Learn Kubernetes", "Master pod, deployment, and service concepts", False),
    ("Setup EKS Cluster", "Create production-ready EKS cluster on AWS", False),
    ("Implement CI/CD", "Setup Jenkins pipeline for automated deployments", False),
]


def upgrade() -> None:
    tasks = op.create_table(
        "tasks",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index("idx_tasks_created_at", "tasks", [sa.text("created_at DESC")])
    op.create_index("idx_tasks_completed", "tasks", ["completed"])

    if op.get_context().dialect.name == "postgresql":
        op.execute(
            """
            CREATE OR REPLACE FUNCTION update_updated_at_column()
            RETURNS TRIGGER AS $$
            BEGIN
                NEW.updated_at = CURRENT_TIMESTAMP;
                RETURN NEW;
            END;
            $$ language 'plpgsql';
            """
        )
        op.execute(
            """
            CREATE TRIGGER update_tasks_updated_at BEFORE UPDATE
                ON tasks FOR EACH ROW EXECUTE FUNCTION update_updated_at_column();
            """
        )

    op.bulk_insert(
        tasks,
        [
            {"title": title, "description": description, "completed": completed}
            for title, description, completed in SEED_TASKS
        ],
    )


def downgrade() -> None:
    if op.get_context().dialect.name == "postgresql":
        op.execute("DROP TRIGGER IF EXISTS update_tasks_updated_at ON tasks")
        op.execute("DROP FUNCTION IF EXISTS update_updated_at_column()")
    op.drop_index("idx_tasks_completed", table_name="tasks")
    op.drop_index("idx_tasks_created_at", table_name="tasks")
    op.drop_table("tasks")
