from typing import Optional
from fastapi import status

class BaseAPIException(Exception):
    """
    Parent class for every error the API renders itself.
    The message is exactly what the client sees in the `error` field.
    """
    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
    ):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)

# =========================================================
# 1. HTTP ERRORS (raised by the handlers)
# =========================================================

class BadRequestException(BaseAPIException):
    """400: malformed input (bad id, unreadable or undecodable body)"""
    def __init__(self, message: str = "Bad Request"):
        super().__init__(
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST
        )

class NotFoundException(BaseAPIException):
    """404: the requested student does not exist"""
    def __init__(self, message: str = "Resource not found"):
        super().__init__(
            message=message,
            status_code=status.HTTP_404_NOT_FOUND
        )

class InternalServerException(BaseAPIException):
    """500: the store call failed"""
    def __init__(self, message: str = "internal server error"):
        super().__init__(
            message=message,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR
        )

# =========================================================
# 2. STORAGE ERRORS (raised by the record store)
# =========================================================

class StorageError(Exception):
    """
    Base class for record store failures.

    `op` names the store operation that failed, e.g. `storage.students.read`.
    The driver exception, if any, is chained as `__cause__`.
    """
    def __init__(self, op: str, message: Optional[str] = None):
        self.op = op
        super().__init__(f"{op}: {message}" if message else op)

class NotFoundError(StorageError):
    """No row matched the requested id."""
    def __init__(self, op: str, student_id: int):
        self.student_id = student_id
        super().__init__(op, f"student {student_id} not found")

class PersistenceError(StorageError):
    """Any backing-store failure that is not a missing row."""
