"""Shared exceptions module."""

from typing import Optional

from pydantic import ValidationError


class PrivgateException(Exception):
    """Base exception for privgate services."""

    pass


class NotFoundException(PrivgateException):
    """Exception raised when an object is not found."""

    def __init__(self, message: Optional[str] = "Object not found"):
        """Create a new NotFoundException instance.

        Args:
        ----
            message (str, optional): The error message. Has default message.

        """
        self.message = message
        super().__init__(self.message)


class ConflictException(PrivgateException):
    """Exception raised when an object collides with an existing one."""

    def __init__(self, message: Optional[str] = "Object already exists"):
        """Create a new ConflictException instance.

        Args:
        ----
            message (str, optional): The error message. Has default message.

        """
        self.message = message
        super().__init__(self.message)


class StorageUnavailableError(PrivgateException):
    """Exception raised when the backing store cannot serve a request.

    Distinct from any business-rule outcome: callers may retry.
    """

    def __init__(
        self,
        message: Optional[str] = "Storage is temporarily unavailable",
        retry_after: int = 1,
    ):
        """Create a new StorageUnavailableError instance.

        Args:
        ----
            message (str, optional): The error message. Has default message.
            retry_after (int): Seconds a client should wait before retrying.

        """
        self.message = message
        self.retry_after = retry_after
        super().__init__(self.message)


class InvalidStateError(Exception):
    """Exception raised when an object is in an invalid state.

    Used when multiple services are involved and the state of one service is invalid,
    in relation to the other services.
    """

    def __init__(self, message: Optional[str] = "Object is in an invalid state"):
        """Create a new InvalidStateError instance.

        Args:
        ----
            message (str, optional): The error message. Has default message.

        """
        self.message = message
        super().__init__(self.message)


def unpack_validation_error(exc: ValidationError) -> dict:
    """Unpack a Pydantic validation error into a dictionary.

    Args:
    ----
        exc (ValidationError): The Pydantic validation error.

    Returns:
    -------
        dict: The dictionary representation of the validation error.

    """
    error_messages = []
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error["loc"])
        message = error["msg"]
        error_messages.append({field: message})

    return {"errors": error_messages}
