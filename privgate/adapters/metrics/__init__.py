"""Metrics adapters: Prometheus and Fake implementations."""

from privgate.adapters.metrics.privilege_usage import (
    DecisionRecord,
    FakePrivilegeUsageMetrics,
    PrometheusPrivilegeUsageMetrics,
)
from privgate.adapters.metrics.renderer import FakeMetricsRenderer, PrometheusMetricsRenderer

__all__ = [
    "DecisionRecord",
    "FakeMetricsRenderer",
    "FakePrivilegeUsageMetrics",
    "PrometheusMetricsRenderer",
    "PrometheusPrivilegeUsageMetrics",
]
