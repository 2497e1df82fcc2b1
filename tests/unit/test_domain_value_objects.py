"""Tests for domain value objects (validation on construction)."""

import pytest

from eventchain.domain.value_objects import (
    ActionVersion,
    BindingExpression,
    ChainName,
    StepAlias,
)


def test_chain_name_strips_whitespace() -> None:
    assert ChainName("  Welcome flow ").value == "Welcome flow"


@pytest.mark.parametrize("value", ["", "   ", "x" * 201])
def test_chain_name_rejects_blank_or_too_long(value: str) -> None:
    with pytest.raises(ValueError):
        ChainName(value)


@pytest.mark.parametrize("value", ["create_task", "step1", "a", "x" * 64])
def test_step_alias_accepts_identifiers(value: str) -> None:
    assert StepAlias(value).value == value


@pytest.mark.parametrize(
    "value", ["", "1step", "Create", "has-dash", "has space", "x" * 65]
)
def test_step_alias_rejects_non_identifiers(value: str) -> None:
    with pytest.raises(ValueError):
        StepAlias(value)


def test_step_alias_trigger_is_reserved() -> None:
    with pytest.raises(ValueError, match="reserved"):
        StepAlias("trigger")


@pytest.mark.parametrize("value", ["1", "1.0", "2024-01", "v2_beta"])
def test_action_version_accepts_common_forms(value: str) -> None:
    assert ActionVersion(value).value == value


@pytest.mark.parametrize("value", ["", ".1", "1 0", "x" * 33])
def test_action_version_rejects_invalid(value: str) -> None:
    with pytest.raises(ValueError):
        ActionVersion(value)


def test_binding_expression_root_names() -> None:
    expr = BindingExpression("trigger.amount > 10 and create_task.ok")
    assert expr.root_names() == {"trigger", "create_task"}


@pytest.mark.parametrize("value", ["", "  ", "trigger.", "a ==", "x = 1"])
def test_binding_expression_rejects_unparseable(value: str) -> None:
    with pytest.raises(ValueError):
        BindingExpression(value)


def test_binding_expression_rejects_too_long() -> None:
    with pytest.raises(ValueError, match="exceed"):
        BindingExpression("a" * 2001)
