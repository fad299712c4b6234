"""Metrics renderer adapters (Prometheus + Fake).

Prometheus implementation wraps a CollectorRegistry so the /metrics endpoint
can serialize all registered collectors into the text exposition format.
"""

from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, generate_latest

from privgate.core.protocols.metrics import MetricsRenderer


def _split_content_type(raw: str) -> tuple[str, str]:
    """Split a Content-Type header value into (media-type, charset)."""
    media_parts: list[str] = []
    charset = "utf-8"
    for part in (p.strip() for p in raw.split(";")):
        if part.lower().startswith("charset="):
            charset = part.split("=", 1)[1].strip()
        else:
            media_parts.append(part)
    return "; ".join(media_parts), charset


_CONTENT_TYPE, _CHARSET = _split_content_type(CONTENT_TYPE_LATEST)


class PrometheusMetricsRenderer(MetricsRenderer):
    """Render all metrics of a shared CollectorRegistry."""

    def __init__(self, registry: CollectorRegistry) -> None:
        self._registry = registry

    @property
    def content_type(self) -> str:
        return _CONTENT_TYPE

    @property
    def charset(self) -> str:
        return _CHARSET

    def generate(self) -> bytes:
        return generate_latest(self._registry)


# ---------------------------------------------------------------------------
# Fake
# ---------------------------------------------------------------------------


class FakeMetricsRenderer(MetricsRenderer):
    """In-memory spy implementing the MetricsRenderer protocol."""

    def __init__(self) -> None:
        self.generate_calls: int = 0

    @property
    def content_type(self) -> str:
        return "text/plain"

    @property
    def charset(self) -> str:
        return "utf-8"

    def generate(self) -> bytes:
        self.generate_calls += 1
        return b"# fake metrics\n"
