from __future__ import annotations

from typing import Any


INTERNAL_ERROR_MESSAGE = "Internal server error. Please try again."


class UploadError(Exception):
    """Failure that maps onto a JSON error response."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def payload(self) -> dict[str, Any]:
        return {"success": False, "error": {"message": self.message}}


class ValidationError(UploadError):
    status_code = 400

    def __init__(self, issues: list[dict[str, Any]]) -> None:
        super().__init__("Invalid upload request")
        self.issues = issues

    def payload(self) -> dict[str, Any]:
        return {"success": False, "error": {"issues": self.issues}}


class NotFoundError(UploadError):
    status_code = 404


class MethodNotAllowedError(UploadError):
    status_code = 405

    def __init__(self, message: str = "Method not allowed") -> None:
        super().__init__(message)


class OriginForbiddenError(UploadError):
    status_code = 403

    def __init__(self, message: str = "Origin not allowed") -> None:
        super().__init__(message)


class InternalError(UploadError):
    status_code = 500

    def __init__(self) -> None:
        super().__init__(INTERNAL_ERROR_MESSAGE)
