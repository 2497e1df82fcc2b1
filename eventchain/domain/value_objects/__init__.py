"""Domain value objects and shared value types."""

from eventchain.domain.value_objects.core import (
    TRIGGER_CONTEXT_KEY,
    ActionVersion,
    BindingExpression,
    ChainName,
    StepAlias,
)

__all__ = [
    "TRIGGER_CONTEXT_KEY",
    "ActionVersion",
    "BindingExpression",
    "ChainName",
    "StepAlias",
]
