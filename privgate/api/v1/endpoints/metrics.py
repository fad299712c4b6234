"""Prometheus scrape endpoint."""

from fastapi import Response

from privgate.api.deps import Inject
from privgate.api.router import TrailingSlashRouter
from privgate.core.protocols import MetricsRenderer

router = TrailingSlashRouter()


@router.get("", include_in_schema=False)
async def metrics(renderer: MetricsRenderer = Inject(MetricsRenderer)) -> Response:
    """Render all collected metrics in the Prometheus text format."""
    return Response(
        content=renderer.generate(),
        media_type=f"{renderer.content_type}; charset={renderer.charset}",
    )
