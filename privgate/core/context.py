"""Base context for all operations.

Provides the universal context type that specialized contexts inherit from.
CRUD layer and services type-hint against BaseContext; ApiContext extends it
with request-specific fields.
"""

from dataclasses import dataclass, field
from typing import Optional

from privgate.core.logging import ContextualLogger


@dataclass
class BaseContext:
    """Base context for all operations.

    Carries the acting identity for audit fields and a contextual logger.
    ``logger`` is keyword-only with a default of None; when omitted it is
    auto-derived from the actor in __post_init__.
    """

    actor: Optional[str] = None

    logger: ContextualLogger = field(default=None, kw_only=True, repr=False)

    def __post_init__(self):
        """Auto-derive logger from the actor identity if not provided."""
        if self.logger is None:
            from privgate.core.logging import logger as base_logger

            self.logger = base_logger.with_context(actor=self.actor)

    @property
    def tracking_id(self) -> Optional[str]:
        """Identity written to created_by/modified_by audit fields."""
        return self.actor


def system_context() -> BaseContext:
    """Context for scheduler-driven and other non-request work."""
    return BaseContext(actor="system")
