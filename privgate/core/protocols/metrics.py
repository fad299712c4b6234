"""Metrics protocols for dependency injection.

- PrivilegeUsageMetrics: usage decision instrumentation
- MetricsRenderer: metrics serialization for scraping
"""

from typing import Protocol, runtime_checkable

# ---------------------------------------------------------------------------
# PrivilegeUsageMetrics
# ---------------------------------------------------------------------------


@runtime_checkable
class PrivilegeUsageMetrics(Protocol):
    """Protocol for privilege usage decision metrics."""

    def record_decision(self, privilege: str, outcome: str, reason: str) -> None:
        """Count one decision.

        Args:
            privilege: Privilege name.
            outcome: ``allowed`` or ``denied``.
            reason: Denial reason code, ``none`` when allowed.
        """
        ...

    def record_consumed(self, privilege: str, amount: int) -> None:
        """Count units consumed by a successful use."""
        ...


# ---------------------------------------------------------------------------
# MetricsRenderer
# ---------------------------------------------------------------------------


@runtime_checkable
class MetricsRenderer(Protocol):
    """Serializes collected metrics for the /metrics endpoint."""

    @property
    def content_type(self) -> str:
        """Media type of the rendered payload."""
        ...

    @property
    def charset(self) -> str:
        """Charset of the rendered payload."""
        ...

    def generate(self) -> bytes:
        """Render all collected metrics."""
        ...
