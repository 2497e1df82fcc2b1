"""Domain enumerations for the event-chain engine.

Enums represent fixed sets of domain values (execution and step lifecycle).
"""

from enum import Enum


class _ValuesMixin:
    """Mixin that adds a values() classmethod to str Enums."""

    @classmethod
    def values(cls) -> list[str]:
        """Return all valid values as strings (e.g. for CHECK constraints)."""
        return [member.value for member in cls]


class ChainExecutionStatus(_ValuesMixin, str, Enum):
    """Chain execution lifecycle.

    pending -> running -> {completed | failed}; compensating is entered from
    running when a step fails and always settles to failed.
    """

    PENDING = "pending"
    RUNNING = "running"
    COMPENSATING = "compensating"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (ChainExecutionStatus.COMPLETED, ChainExecutionStatus.FAILED)


class StepExecutionStatus(_ValuesMixin, str, Enum):
    """Step execution lifecycle.

    pending -> running -> {succeeded | failed | skipped | cancelled} -> [compensated].
    A step never re-enters running.
    """

    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"
    CANCELLED = "cancelled"
    COMPENSATED = "compensated"


class CompensationOutcome(_ValuesMixin, str, Enum):
    """How a failed execution was (or was not) undone.

    NONE: no compensation walk ran (success, disabled chain, nothing succeeded).
    COMPENSATED: every succeeded step was compensatable and was compensated.
    PARTIALLY_COMPENSATED: non-compensatable steps left their side effects in place.
    COMPENSATION_FAILED: a compensating action failed; manual intervention required.
    """

    NONE = "none"
    COMPENSATED = "compensated"
    PARTIALLY_COMPENSATED = "partially_compensated"
    COMPENSATION_FAILED = "compensation_failed"
