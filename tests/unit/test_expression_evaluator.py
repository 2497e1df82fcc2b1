"""ExpressionEvaluator: bindings, conditions and error mapping."""

import pytest

from eventchain.application.services import ExpressionEvaluator
from eventchain.domain.exceptions import MappingError

CONTEXT = {
    "trigger": {"task_id": "t1", "amount": 12, "items": [1, 2, 3], "tags": {"a": 1}},
    "create_task": {"task_id": "new_1", "ok": True},
}


@pytest.fixture
def evaluator() -> ExpressionEvaluator:
    return ExpressionEvaluator()


@pytest.mark.parametrize(
    ("expression", "expected"),
    [
        ("trigger.task_id", "t1"),
        ("create_task.task_id", "new_1"),
        ("trigger.amount * 2", 24),
        ("trigger.items[0]", 1),
        ("len(trigger.items)", 3),
        ("trigger['amount']", 12),
        ("str(trigger.amount) + '!'", "12!"),
        ("'fixed'", "fixed"),
    ],
)
def test_evaluate_reads_context(evaluator, expression, expected) -> None:
    assert evaluator.evaluate(expression, CONTEXT) == expected


def test_dotted_access_prefers_mapping_keys_over_dict_methods(evaluator) -> None:
    assert evaluator.evaluate("trigger.items", CONTEXT) == [1, 2, 3]


@pytest.mark.parametrize(
    "expression",
    [
        "missing_step.id",
        "trigger.nope",
        "trigger.items[10]",
        "trigger.amount / 0",
        "__import__('os')",
        "trigger.__class__",
    ],
)
def test_evaluate_failures_raise_mapping_error(evaluator, expression) -> None:
    with pytest.raises(MappingError) as exc_info:
        evaluator.evaluate(expression, CONTEXT)
    assert exc_info.value.details["expression"] == expression


def test_condition_none_or_blank_is_true(evaluator) -> None:
    assert evaluator.evaluate_condition(None, CONTEXT) is True
    assert evaluator.evaluate_condition("  ", CONTEXT) is True


def test_condition_bool_result(evaluator) -> None:
    assert evaluator.evaluate_condition("trigger.amount > 10", CONTEXT) is True
    assert evaluator.evaluate_condition("create_task.ok and trigger.amount < 5", CONTEXT) is False


def test_condition_must_be_bool(evaluator) -> None:
    with pytest.raises(MappingError, match="bool"):
        evaluator.evaluate_condition("trigger.amount", CONTEXT)


def test_resolve_mappings(evaluator) -> None:
    resolved = evaluator.resolve_mappings(
        {"task": "create_task.task_id", "double": "trigger.amount * 2"}, CONTEXT
    )
    assert resolved == {"task": "new_1", "double": 24}


def test_resolve_mappings_fails_on_first_bad_binding(evaluator) -> None:
    with pytest.raises(MappingError):
        evaluator.resolve_mappings({"ok": "trigger.task_id", "bad": "ghost.x"}, CONTEXT)


def test_custom_functions_replace_defaults() -> None:
    evaluator = ExpressionEvaluator(functions={"upper": str.upper})
    assert evaluator.evaluate("upper(trigger.task_id)", CONTEXT) == "T1"
    with pytest.raises(MappingError):
        evaluator.evaluate("len(trigger.items)", CONTEXT)
