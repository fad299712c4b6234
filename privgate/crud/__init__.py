"""CRUD singletons for the application."""

from .crud_plan_privilege import plan_privilege
from .crud_privilege import privilege
from .crud_privilege_usage import privilege_usage
from .crud_privilege_usage_history import privilege_usage_history
from .crud_subscription import subscription

__all__ = [
    "plan_privilege",
    "privilege",
    "privilege_usage",
    "privilege_usage_history",
    "subscription",
]
