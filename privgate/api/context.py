"""HTTP API request context.

Extends BaseContext with request-specific fields. Only the API layer creates
these via deps.get_context().
"""

from dataclasses import dataclass

from privgate.core.context import BaseContext


@dataclass
class ApiContext(BaseContext):
    """Request context injected into endpoints via Depends()."""

    # Request metadata
    request_id: str = ""

    def __post_init__(self):
        """Derive the logger with both the actor and the request id."""
        if self.logger is None:
            from privgate.core.logging import logger as base_logger

            self.logger = base_logger.with_context(
                actor=self.actor, request_id=self.request_id or None
            )
