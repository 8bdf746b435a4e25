from typing import Optional

from fastapi import status


class ServiceError(Exception):
    """Base exception for service layer errors."""

    def __init__(self, message: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ValidationError(ServiceError):
    """Input is well-formed JSON but not acceptable (caller must fix and resubmit)."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_400_BAD_REQUEST)


class NotFoundError(ServiceError):
    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_404_NOT_FOUND)


class ConflictError(ServiceError):
    """A teacher (or section) slot is already claimed by another active entry."""

    def __init__(self, message: str, conflict_details: Optional[str] = None) -> None:
        super().__init__(message, status.HTTP_409_CONFLICT)
        self.conflict_details = conflict_details


class StorageError(ServiceError):
    """The backing store failed. Never retried: a replayed create could double-insert."""

    def __init__(self, message: str = "Storage operation failed") -> None:
        super().__init__(message, status.HTTP_500_INTERNAL_SERVER_ERROR)
