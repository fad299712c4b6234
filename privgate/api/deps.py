"""Dependencies that are used in the API endpoints."""

import uuid
from typing import Optional, get_type_hints

from fastapi import Depends, Header, Request

from privgate.api.context import ApiContext
from privgate.core import container as container_mod
from privgate.core.container import Container
from privgate.db.session import get_db

__all__ = ["Inject", "get_container", "get_context", "get_db"]


async def get_context(
    request: Request,
    x_actor_id: Optional[str] = Header(None, alias="X-Actor-Id"),
) -> ApiContext:
    """Build the request context.

    Authentication happens upstream; the gateway forwards the caller's identity
    in ``X-Actor-Id``, which is stamped on audit fields and log records.
    """
    request_id = getattr(request.state, "request_id", None) or str(uuid.uuid4())
    return ApiContext(actor=x_actor_id, request_id=request_id)


def get_container() -> Container:
    """Get the DI container. Initialized at startup."""
    c = container_mod.container
    if c is None:
        raise RuntimeError("Container not initialized. Call initialize_container() first.")
    return c


# ---------------------------------------------------------------------------
# Protocol Injection
# ---------------------------------------------------------------------------

# Cache of protocol_type -> Container field name, built once at first call.
_INJECT_CACHE: dict[type, str] = {}


def _resolve_field_name(protocol_type: type) -> str:
    """Find which Container field matches the given protocol type.

    Uses get_type_hints() to introspect the Container dataclass. The result is
    cached so the lookup happens at most once per protocol type.
    """
    if not _INJECT_CACHE:
        for name, hint in get_type_hints(Container).items():
            _INJECT_CACHE[hint] = name

    field_name = _INJECT_CACHE.get(protocol_type)
    if field_name is None:
        available = list(_INJECT_CACHE.values())
        raise TypeError(
            f"No binding for {protocol_type.__name__} in Container. Available fields: {available}"
        )
    return field_name


def Inject(protocol_type: type):  # noqa: N802 - uppercase to match FastAPI convention
    """Resolve a protocol implementation from the DI container.

    Works like ``Depends()`` but looks up the implementation by protocol type.

    Usage in FastAPI endpoints::

        @router.post("/{subscription_id}/privileges/{privilege_name}/use")
        async def use_privilege(
            usage_service: PrivilegeUsageServiceProtocol = Inject(
                PrivilegeUsageServiceProtocol
            ),
        ):
            ...
    """
    field_name = _resolve_field_name(protocol_type)

    def _resolve(c: Container = Depends(get_container)):
        return getattr(c, field_name)

    return Depends(_resolve)
