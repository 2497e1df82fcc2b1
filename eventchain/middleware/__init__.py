"""HTTP middleware: request ID and correlation ID.

Applied in main app; order matters (last added = outermost).
"""

from eventchain.middleware.request_context import (
    CorrelationIDMiddleware,
    RequestIDMiddleware,
)

__all__ = [
    "CorrelationIDMiddleware",
    "RequestIDMiddleware",
]
