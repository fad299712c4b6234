"""API routes for the FastAPI application."""

from privgate.api.router import TrailingSlashRouter
from privgate.api.v1.endpoints import (
    health,
    metrics,
    plan_privileges,
    privileges,
    subscription_privileges,
)

# Use our custom router that handles trailing slashes
api_router = TrailingSlashRouter()
api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(metrics.router, prefix="/metrics", tags=["metrics"])
api_router.include_router(
    subscription_privileges.router, prefix="/subscriptions", tags=["subscription-privileges"]
)
api_router.include_router(privileges.router, prefix="/privileges", tags=["privileges"])
api_router.include_router(
    plan_privileges.router, prefix="/plan-privileges", tags=["plan-privileges"]
)
