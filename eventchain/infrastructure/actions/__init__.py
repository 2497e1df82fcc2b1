"""Action execution boundary implementations."""

from eventchain.infrastructure.actions.handler_action_executor import HandlerActionExecutor

__all__ = ["HandlerActionExecutor"]
