"""Privilege usage metrics adapters (Prometheus + Fake).

Prometheus implementation uses a caller-supplied CollectorRegistry so these
metrics are served on the shared ``/metrics`` endpoint.
"""

from dataclasses import dataclass

from prometheus_client import CollectorRegistry, Counter

from privgate.core.protocols.metrics import PrivilegeUsageMetrics


class PrometheusPrivilegeUsageMetrics(PrivilegeUsageMetrics):
    """Prometheus-backed privilege usage metrics."""

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self._registry = registry or CollectorRegistry()

        self._decisions_total = Counter(
            "privgate_privilege_usage_decisions_total",
            "Privilege usage decisions by outcome and denial reason",
            ["privilege", "outcome", "reason"],
            registry=self._registry,
        )

        self._amount_total = Counter(
            "privgate_privilege_usage_amount_total",
            "Privilege units consumed",
            ["privilege"],
            registry=self._registry,
        )

    # -- PrivilegeUsageMetrics protocol methods --

    def record_decision(self, privilege: str, outcome: str, reason: str) -> None:
        self._decisions_total.labels(privilege=privilege, outcome=outcome, reason=reason).inc()

    def record_consumed(self, privilege: str, amount: int) -> None:
        self._amount_total.labels(privilege=privilege).inc(amount)


# ---------------------------------------------------------------------------
# Fake
# ---------------------------------------------------------------------------


@dataclass
class DecisionRecord:
    """Single observed decision."""

    privilege: str
    outcome: str
    reason: str


class FakePrivilegeUsageMetrics(PrivilegeUsageMetrics):
    """In-memory spy implementing the PrivilegeUsageMetrics protocol."""

    def __init__(self) -> None:
        self.decisions: list[DecisionRecord] = []
        self.consumed: list[tuple[str, int]] = []

    def record_decision(self, privilege: str, outcome: str, reason: str) -> None:
        self.decisions.append(DecisionRecord(privilege, outcome, reason))

    def record_consumed(self, privilege: str, amount: int) -> None:
        self.consumed.append((privilege, amount))

    # -- test helpers --

    def outcomes(self) -> list[str]:
        """Outcomes in the order they were recorded."""
        return [d.outcome for d in self.decisions]

    def clear(self) -> None:
        """Reset all recorded state."""
        self.decisions.clear()
        self.consumed.clear()
