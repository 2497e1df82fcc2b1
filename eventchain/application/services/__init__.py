"""Application services: registry building, expression evaluation, payload validation."""

from eventchain.application.services.expression_evaluator import ExpressionEvaluator
from eventchain.application.services.payload_validator import PayloadValidator
from eventchain.application.services.registry import (
    ActionHandler,
    IChainModule,
    RegistryBuilder,
    build_registry,
    load_chain_modules,
)

__all__ = [
    "ActionHandler",
    "ExpressionEvaluator",
    "IChainModule",
    "PayloadValidator",
    "RegistryBuilder",
    "build_registry",
    "load_chain_modules",
]
