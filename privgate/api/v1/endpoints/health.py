"""Health check endpoints."""

from privgate.api.router import TrailingSlashRouter
from privgate.core.config import settings
from privgate.schemas.health import HealthResponse

router = TrailingSlashRouter()


@router.get("", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Liveness probe: confirms the process is serving requests."""
    return HealthResponse(status="healthy", service=settings.PROJECT_NAME)
