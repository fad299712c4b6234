"""Core protocols for dependency injection."""

from privgate.core.protocols.metrics import MetricsRenderer, PrivilegeUsageMetrics

__all__ = ["MetricsRenderer", "PrivilegeUsageMetrics"]
