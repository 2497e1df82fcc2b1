"""Binding and condition evaluation with simpleeval.

Expressions read the binding context: 'trigger' (the trigger payload) and
the alias of every step that already succeeded (its output). Dotted access
reads mapping keys, so 'trigger.amount' and 'create_task.task_id' work on
plain dicts. No eval, no imports, no dunder access.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from simpleeval import AttributeDoesNotExist, InvalidExpression, SimpleEval

from eventchain.domain.exceptions import MappingError

DEFAULT_FUNCTIONS: dict[str, Any] = {
    "len": len,
    "str": str,
    "int": int,
    "float": float,
}

_EVAL_ERRORS = (
    InvalidExpression,
    KeyError,
    IndexError,
    TypeError,
    ValueError,
    ZeroDivisionError,
    SyntaxError,
)


class _BindingEval(SimpleEval):
    """SimpleEval that resolves dotted names against mapping keys first.

    Plain getattr on a dict would return methods for keys such as 'items'.
    """

    def _eval_attribute(self, node):
        if not node.attr.startswith("_"):
            value = self._eval(node.value)
            if isinstance(value, Mapping):
                if node.attr in value:
                    return value[node.attr]
                raise AttributeDoesNotExist(node.attr, self.expr)
        return super()._eval_attribute(node)


class ExpressionEvaluator:
    """Evaluates binding expressions and step conditions against a context."""

    def __init__(self, functions: Mapping[str, Any] | None = None) -> None:
        self._functions = dict(functions if functions is not None else DEFAULT_FUNCTIONS)

    def evaluate(self, expression: str, context: Mapping[str, Any]) -> Any:
        """Evaluate one expression.

        Raises:
            MappingError: On unknown names or attributes, or any evaluation error.
        """
        evaluator = _BindingEval(names=dict(context), functions=self._functions)
        try:
            return evaluator.eval(expression.strip())
        except _EVAL_ERRORS as e:
            raise MappingError(expression, str(e) or e.__class__.__name__) from e

    def evaluate_condition(self, condition: str | None, context: Mapping[str, Any]) -> bool:
        """Return the condition's value; None or blank means "always run".

        Raises:
            MappingError: If evaluation fails or the result is not a bool.
        """
        if condition is None or not condition.strip():
            return True
        result = self.evaluate(condition, context)
        if not isinstance(result, bool):
            raise MappingError(
                condition,
                f"condition must evaluate to a bool, got {type(result).__name__}",
            )
        return result

    def resolve_mappings(
        self, mappings: Mapping[str, str], context: Mapping[str, Any]
    ) -> dict[str, Any]:
        """Resolve every parameter binding; the first failure raises MappingError."""
        return {param: self.evaluate(expr, context) for param, expr in mappings.items()}
