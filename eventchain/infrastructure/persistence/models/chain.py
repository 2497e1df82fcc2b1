"""Chain definition and chain execution ORM models.

Tables: chain_definition, chain_definition_step, chain_execution,
chain_step_execution. Children are deleted with their parent; executions
are deleted with their definition.
"""

from datetime import datetime
from typing import Any

import sqlalchemy as sa
from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from eventchain.domain.enums import (
    ChainExecutionStatus,
    CompensationOutcome,
    StepExecutionStatus,
)
from eventchain.infrastructure.persistence.database import Base
from eventchain.infrastructure.persistence.models.mixins import (
    CuidMixin,
    FamilyScopedModel,
    status_check,
)


class ChainDefinitionModel(FamilyScopedModel, Base):
    """Chain definition. Table: chain_definition. Trigger metadata denormalized from the registry."""

    __tablename__ = "chain_definition"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by_user_id: Mapped[str] = mapped_column(String, nullable=False)
    trigger_event_type: Mapped[str] = mapped_column(String, nullable=False, index=True)
    trigger_module: Mapped[str] = mapped_column(String, nullable=False, default="")
    trigger_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    trigger_output_schema: Mapped[dict[str, Any]] = mapped_column(
        JSON, nullable=False, default=dict
    )
    is_enabled: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=sa.text("true")
    )

    steps: Mapped[list["ChainDefinitionStepModel"]] = relationship(
        back_populates="definition",
        cascade="all, delete-orphan",
        order_by="[ChainDefinitionStepModel.step_order, ChainDefinitionStepModel.position]",
        lazy="selectin",
        passive_deletes=True,
    )

    __table_args__ = (
        Index(
            "ix_chain_definition_family_trigger",
            "family_id",
            "trigger_event_type",
            "is_enabled",
        ),
    )


class ChainDefinitionStepModel(CuidMixin, Base):
    """Chain definition step. Table: chain_definition_step.

    position is the insertion index and breaks step_order ties on reload.
    """

    __tablename__ = "chain_definition_step"

    chain_definition_id: Mapped[str] = mapped_column(
        String,
        ForeignKey("chain_definition.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    alias: Mapped[str] = mapped_column(String(64), nullable=False)
    name: Mapped[str] = mapped_column(String, nullable=False)
    action_type: Mapped[str] = mapped_column(String, nullable=False)
    action_version: Mapped[str] = mapped_column(String(32), nullable=False)
    module: Mapped[str] = mapped_column(String, nullable=False, default="")
    input_mappings: Mapped[dict[str, str]] = mapped_column(
        JSON, nullable=False, default=dict
    )
    condition: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_compensatable: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=sa.text("false")
    )
    compensation_action_type: Mapped[str | None] = mapped_column(String, nullable=True)
    step_order: Mapped[int] = mapped_column(Integer, nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    definition: Mapped[ChainDefinitionModel] = relationship(back_populates="steps")

    __table_args__ = (
        UniqueConstraint(
            "chain_definition_id", "alias", name="uq_chain_definition_step_alias"
        ),
    )


class ChainExecutionModel(FamilyScopedModel, Base):
    """Chain execution. Table: chain_execution."""

    __tablename__ = "chain_execution"

    chain_definition_id: Mapped[str] = mapped_column(
        String,
        ForeignKey("chain_definition.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    correlation_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    trigger_event_type: Mapped[str] = mapped_column(String, nullable=False)
    trigger_event_id: Mapped[str] = mapped_column(String, nullable=False)
    trigger_payload: Mapped[dict[str, Any]] = mapped_column(
        JSON, nullable=False, default=dict
    )
    status: Mapped[str] = mapped_column(
        String,
        nullable=False,
        default=ChainExecutionStatus.PENDING.value,
        index=True,
    )
    context: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    failure_reason: Mapped[str | None] = mapped_column(String, nullable=True)
    compensation_outcome: Mapped[str] = mapped_column(
        String, nullable=False, default=CompensationOutcome.NONE.value
    )
    cancel_requested: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=sa.text("false")
    )
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    failed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    step_executions: Mapped[list["StepExecutionModel"]] = relationship(
        back_populates="execution",
        cascade="all, delete-orphan",
        order_by="[StepExecutionModel.step_order, StepExecutionModel.position]",
        lazy="selectin",
        passive_deletes=True,
    )

    __table_args__ = (
        Index(
            "ix_chain_execution_family_definition",
            "family_id",
            "chain_definition_id",
        ),
        CheckConstraint(
            status_check("status", ChainExecutionStatus.values()),
            name="chain_execution_status_check",
        ),
        CheckConstraint(
            status_check("compensation_outcome", CompensationOutcome.values()),
            name="chain_execution_compensation_outcome_check",
        ),
    )


class StepExecutionModel(CuidMixin, Base):
    """Step execution. Table: chain_step_execution."""

    __tablename__ = "chain_step_execution"

    chain_execution_id: Mapped[str] = mapped_column(
        String,
        ForeignKey("chain_execution.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    alias: Mapped[str] = mapped_column(String(64), nullable=False)
    name: Mapped[str] = mapped_column(String, nullable=False)
    action_type: Mapped[str] = mapped_column(String, nullable=False)
    action_version: Mapped[str] = mapped_column(String(32), nullable=False)
    step_order: Mapped[int] = mapped_column(Integer, nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[str] = mapped_column(
        String, nullable=False, default=StepExecutionStatus.PENDING.value
    )
    input_payload: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    output: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    error: Mapped[str | None] = mapped_column(Text, nullable=True)
    compensation_error: Mapped[str | None] = mapped_column(Text, nullable=True)
    started_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    compensated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    execution: Mapped[ChainExecutionModel] = relationship(back_populates="step_executions")

    __table_args__ = (
        UniqueConstraint(
            "chain_execution_id", "alias", name="uq_chain_step_execution_alias"
        ),
        CheckConstraint(
            status_check("status", StepExecutionStatus.values()),
            name="chain_step_execution_status_check",
        ),
    )
