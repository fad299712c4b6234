"""Privilege domain exceptions.

Business denials are not exceptions: they come back as ``UsageDecision``.
Only missing resources and infrastructure failures are raised.
"""

from typing import Optional
from uuid import UUID

from privgate.core.exceptions import (
    ConflictException,
    NotFoundException,
    StorageUnavailableError,
)


class PrivilegeNotFoundError(NotFoundException):
    """Raised when a privilege does not exist or has been deleted."""

    def __init__(self, privilege_id: UUID) -> None:
        """Initialize with the missing privilege id."""
        self.privilege_id = privilege_id
        super().__init__(f"Privilege with ID {privilege_id} not found")


class PlanPrivilegeNotFoundError(NotFoundException):
    """Raised when a plan privilege does not exist."""

    def __init__(self, plan_privilege_id: UUID) -> None:
        """Initialize with the missing plan privilege id."""
        self.plan_privilege_id = plan_privilege_id
        super().__init__(f"Plan privilege with ID {plan_privilege_id} not found")


class SubscriptionNotFoundError(NotFoundException):
    """Raised when a subscription does not exist."""

    def __init__(self, subscription_id: UUID) -> None:
        """Initialize with the missing subscription id."""
        self.subscription_id = subscription_id
        super().__init__(f"Subscription with ID {subscription_id} not found")


class PrivilegeAlreadyExistsError(ConflictException):
    """Raised when a privilege name is already taken by a non-deleted privilege."""

    def __init__(self, name: str) -> None:
        """Initialize with the conflicting name."""
        self.name = name
        super().__init__(f"A privilege named '{name}' already exists")


class PrivilegeStorageError(StorageUnavailableError):
    """Raised when usage state cannot be read or written.

    Never folded into a denial: the caller cannot tell whether quota remains.
    """

    def __init__(self, operation: str, message: Optional[str] = None) -> None:
        """Initialize with the operation that failed."""
        self.operation = operation
        super().__init__(message or f"Privilege storage unavailable during {operation}")
