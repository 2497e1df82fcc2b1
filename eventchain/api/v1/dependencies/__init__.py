"""Presentation-layer dependency injection (composition root).

Routes depend only on these dependencies, not on infrastructure directly.
"""

from eventchain.api.v1.dependencies.chains import (
    get_chain_definition_service,
    get_chain_execution_service,
    get_dispatcher,
    get_event_publisher,
    get_execute_chain_use_case,
    get_payload_validator,
    get_registry,
    get_repositories,
)
from eventchain.api.v1.dependencies.context import get_family_id, get_user_id

__all__ = [
    "get_chain_definition_service",
    "get_chain_execution_service",
    "get_dispatcher",
    "get_event_publisher",
    "get_execute_chain_use_case",
    "get_family_id",
    "get_payload_validator",
    "get_registry",
    "get_repositories",
    "get_user_id",
]
