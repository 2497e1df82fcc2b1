"""add_event_chain_tables

Revision ID: 4f2a9c1e7b30
Revises:
Create Date: 2026-10-19 09:12:44.118203

"""

from collections.abc import Sequence
from typing import Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "4f2a9c1e7b30"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

EXECUTION_STATUSES = ("pending", "running", "compensating", "completed", "failed")
STEP_STATUSES = (
    "pending",
    "running",
    "succeeded",
    "failed",
    "skipped",
    "cancelled",
    "compensated",
)
COMPENSATION_OUTCOMES = (
    "none",
    "compensated",
    "partially_compensated",
    "compensation_failed",
)


def _in(column: str, values: tuple[str, ...]) -> str:
    return "{} IN ({})".format(column, ", ".join(f"'{v}'" for v in values))


def upgrade() -> None:
    """Upgrade schema."""
    # Create chain_definition table
    op.create_table(
        "chain_definition",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("family_id", sa.String(), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("created_by_user_id", sa.String(), nullable=False),
        sa.Column("trigger_event_type", sa.String(), nullable=False),
        sa.Column("trigger_module", sa.String(), nullable=False),
        sa.Column("trigger_description", sa.Text(), nullable=True),
        sa.Column("trigger_output_schema", sa.JSON(), nullable=False),
        sa.Column(
            "is_enabled", sa.Boolean(), server_default=sa.text("true"), nullable=False
        ),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_chain_definition_family_id"),
        "chain_definition",
        ["family_id"],
        unique=False,
    )
    op.create_index(
        op.f("ix_chain_definition_trigger_event_type"),
        "chain_definition",
        ["trigger_event_type"],
        unique=False,
    )
    op.create_index(
        "ix_chain_definition_family_trigger",
        "chain_definition",
        ["family_id", "trigger_event_type", "is_enabled"],
        unique=False,
    )

    # Create chain_definition_step table
    op.create_table(
        "chain_definition_step",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("chain_definition_id", sa.String(), nullable=False),
        sa.Column("alias", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("action_type", sa.String(), nullable=False),
        sa.Column("action_version", sa.String(length=32), nullable=False),
        sa.Column("module", sa.String(), nullable=False),
        sa.Column("input_mappings", sa.JSON(), nullable=False),
        sa.Column("condition", sa.Text(), nullable=True),
        sa.Column(
            "is_compensatable",
            sa.Boolean(),
            server_default=sa.text("false"),
            nullable=False,
        ),
        sa.Column("compensation_action_type", sa.String(), nullable=True),
        sa.Column("step_order", sa.Integer(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(
            ["chain_definition_id"], ["chain_definition.id"], ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "chain_definition_id", "alias", name="uq_chain_definition_step_alias"
        ),
    )
    op.create_index(
        op.f("ix_chain_definition_step_chain_definition_id"),
        "chain_definition_step",
        ["chain_definition_id"],
        unique=False,
    )

    # Create chain_execution table
    op.create_table(
        "chain_execution",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("family_id", sa.String(), nullable=False),
        sa.Column("chain_definition_id", sa.String(), nullable=False),
        sa.Column("correlation_id", sa.String(), nullable=False),
        sa.Column("trigger_event_type", sa.String(), nullable=False),
        sa.Column("trigger_event_id", sa.String(), nullable=False),
        sa.Column("trigger_payload", sa.JSON(), nullable=False),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("context", sa.JSON(), nullable=False),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("failure_reason", sa.String(), nullable=True),
        sa.Column("compensation_outcome", sa.String(), nullable=False),
        sa.Column(
            "cancel_requested",
            sa.Boolean(),
            server_default=sa.text("false"),
            nullable=False,
        ),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("failed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.CheckConstraint(
            _in("status", EXECUTION_STATUSES), name="chain_execution_status_check"
        ),
        sa.CheckConstraint(
            _in("compensation_outcome", COMPENSATION_OUTCOMES),
            name="chain_execution_compensation_outcome_check",
        ),
        sa.ForeignKeyConstraint(
            ["chain_definition_id"], ["chain_definition.id"], ondelete="RESTRICT"
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_chain_execution_family_id"),
        "chain_execution",
        ["family_id"],
        unique=False,
    )
    op.create_index(
        op.f("ix_chain_execution_chain_definition_id"),
        "chain_execution",
        ["chain_definition_id"],
        unique=False,
    )
    op.create_index(
        op.f("ix_chain_execution_correlation_id"),
        "chain_execution",
        ["correlation_id"],
        unique=False,
    )
    op.create_index(
        op.f("ix_chain_execution_status"),
        "chain_execution",
        ["status"],
        unique=False,
    )
    op.create_index(
        "ix_chain_execution_family_definition",
        "chain_execution",
        ["family_id", "chain_definition_id"],
        unique=False,
    )

    # Create chain_step_execution table
    op.create_table(
        "chain_step_execution",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("chain_execution_id", sa.String(), nullable=False),
        sa.Column("alias", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("action_type", sa.String(), nullable=False),
        sa.Column("action_version", sa.String(length=32), nullable=False),
        sa.Column("step_order", sa.Integer(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("input_payload", sa.JSON(), nullable=True),
        sa.Column("output", sa.JSON(), nullable=True),
        sa.Column("error", sa.Text(), nullable=True),
        sa.Column("compensation_error", sa.Text(), nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("compensated_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            _in("status", STEP_STATUSES), name="chain_step_execution_status_check"
        ),
        sa.ForeignKeyConstraint(
            ["chain_execution_id"], ["chain_execution.id"], ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "chain_execution_id", "alias", name="uq_chain_step_execution_alias"
        ),
    )
    op.create_index(
        op.f("ix_chain_step_execution_chain_execution_id"),
        "chain_step_execution",
        ["chain_execution_id"],
        unique=False,
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index(
        op.f("ix_chain_step_execution_chain_execution_id"),
        table_name="chain_step_execution",
    )
    op.drop_table("chain_step_execution")
    op.drop_index("ix_chain_execution_family_definition", table_name="chain_execution")
    op.drop_index(op.f("ix_chain_execution_status"), table_name="chain_execution")
    op.drop_index(op.f("ix_chain_execution_correlation_id"), table_name="chain_execution")
    op.drop_index(
        op.f("ix_chain_execution_chain_definition_id"), table_name="chain_execution"
    )
    op.drop_index(op.f("ix_chain_execution_family_id"), table_name="chain_execution")
    op.drop_table("chain_execution")
    op.drop_index(
        op.f("ix_chain_definition_step_chain_definition_id"),
        table_name="chain_definition_step",
    )
    op.drop_table("chain_definition_step")
    op.drop_index("ix_chain_definition_family_trigger", table_name="chain_definition")
    op.drop_index(
        op.f("ix_chain_definition_trigger_event_type"), table_name="chain_definition"
    )
    op.drop_index(op.f("ix_chain_definition_family_id"), table_name="chain_definition")
    op.drop_table("chain_definition")
