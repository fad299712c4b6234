"""Models for the application."""

from ._base import Base
from .plan_privilege import PlanPrivilege
from .privilege import Privilege
from .privilege_usage import PrivilegeUsage
from .privilege_usage_history import PrivilegeUsageHistory
from .subscription import Subscription

__all__ = [
    "Base",
    "PlanPrivilege",
    "Privilege",
    "PrivilegeUsage",
    "PrivilegeUsageHistory",
    "Subscription",
]
