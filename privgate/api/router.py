"""Router that serves each route with and without a trailing slash.

FastAPI's own slash redirects are disabled on the app (``redirect_slashes=False``)
because a 307 redirect drops the body of POST/PUT requests in some clients.
"""

from typing import Any, Callable

from fastapi import APIRouter
from fastapi.types import DecoratedCallable


class TrailingSlashRouter(APIRouter):
    """APIRouter registering ``/path`` and ``/path/`` for every route.

    Only the slash-less variant appears in the OpenAPI schema.
    """

    def api_route(
        self, path: str, *, include_in_schema: bool = True, **kwargs: Any
    ) -> Callable[[DecoratedCallable], DecoratedCallable]:
        path_no_slash = path[:-1] if path.endswith("/") else path
        add_path = super().api_route(path_no_slash, include_in_schema=include_in_schema, **kwargs)
        add_alternate_path = super().api_route(
            path_no_slash + "/", include_in_schema=False, **kwargs
        )

        def decorator(func: DecoratedCallable) -> DecoratedCallable:
            add_alternate_path(func)
            return add_path(func)

        return decorator
