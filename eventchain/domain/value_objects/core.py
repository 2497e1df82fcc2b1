"""Domain value objects for the event-chain engine.

Value objects are immutable types that represent domain concepts with
self-validation. They have no identity, only value.
"""

import ast
import re
from dataclasses import dataclass
from typing import ClassVar

# Aliases are used as names inside binding expressions, so they must be identifiers.
_ALIAS_RE = re.compile(r"^[a-z][a-z0-9_]{0,63}$")
_VERSION_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]{0,31}$")

TRIGGER_CONTEXT_KEY = "trigger"


@dataclass(frozen=True)
class ChainName:
    """Value object for a chain definition name (1-200 characters, not blank)."""

    value: str

    MAX_LENGTH: ClassVar[int] = 200

    def __post_init__(self) -> None:
        """Strip surrounding whitespace and validate length.

        Raises:
            ValueError: If blank or longer than MAX_LENGTH.
        """
        object.__setattr__(self, "value", (self.value or "").strip())
        if not self.value:
            raise ValueError("Chain name must be a non-empty string")
        if len(self.value) > self.MAX_LENGTH:
            raise ValueError(f"Chain name must not exceed {self.MAX_LENGTH} characters")


@dataclass(frozen=True)
class StepAlias:
    """Value object for a step alias.

    The handle later steps use to read this step's output in binding
    expressions (e.g. 'create_task.task_id'). Lowercase identifier,
    max 64 characters; 'trigger' is reserved for the trigger payload.
    """

    value: str

    def __post_init__(self) -> None:
        if not self.value:
            raise ValueError("Step alias must be a non-empty string")
        if not _ALIAS_RE.match(self.value):
            raise ValueError(
                "Step alias must start with a lowercase letter and contain only "
                "lowercase letters, digits and underscores (max 64 characters)"
            )
        if self.value == TRIGGER_CONTEXT_KEY:
            raise ValueError(f"Step alias '{TRIGGER_CONTEXT_KEY}' is reserved")


@dataclass(frozen=True)
class ActionVersion:
    """Value object for an action version (e.g. '1', '1.0', '2024-01')."""

    value: str

    def __post_init__(self) -> None:
        if not self.value or not _VERSION_RE.match(self.value):
            raise ValueError(
                "Action version must be 1-32 characters: letters, digits, '.', '_' or '-'"
            )


@dataclass(frozen=True)
class BindingExpression:
    """Value object for a binding expression or step condition.

    Only syntax is checked here; names are resolved at run time against the
    binding context ('trigger' plus prior step aliases).
    """

    value: str

    MAX_LENGTH: ClassVar[int] = 2000

    def __post_init__(self) -> None:
        """Validate non-empty, bounded length, and parseable as a single expression.

        Raises:
            ValueError: If empty, too long, or not a valid expression.
        """
        if not self.value or not self.value.strip():
            raise ValueError("Expression must be a non-empty string")
        if len(self.value) > self.MAX_LENGTH:
            raise ValueError(f"Expression must not exceed {self.MAX_LENGTH} characters")
        try:
            ast.parse(self.value.strip(), mode="eval")
        except SyntaxError as e:
            raise ValueError(f"Invalid expression '{self.value}': {e.msg}") from e

    def root_names(self) -> set[str]:
        """Return top-level names read by the expression (e.g. {'trigger', 'step1'})."""
        tree = ast.parse(self.value.strip(), mode="eval")
        return {node.id for node in ast.walk(tree) if isinstance(node, ast.Name)}
