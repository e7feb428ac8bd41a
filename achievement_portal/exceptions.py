from typing import Any, Dict, List, Optional


class AppError(Exception):
    """Base class for errors that are rendered to the client as JSON."""

    status_code = 500
    message = "Server error"

    def __init__(self, message: Optional[str] = None, errors: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message or self.message)
        self.message = message or self.message
        self.errors = errors

    def to_dict(self) -> dict:
        body = {"message": self.message}
        if self.errors:
            body["errors"] = self.errors
        return body


class ValidationError(AppError):
    status_code = 400
    message = "Validation failed"


class InvalidCredentialsError(AppError):
    status_code = 400
    message = "Invalid credentials"


class UnauthenticatedError(AppError):
    status_code = 401
    message = "Unauthorized"


class ForbiddenError(AppError):
    status_code = 403
    message = "Forbidden"


class NotFoundError(AppError):
    status_code = 404
    message = "Not found"


class DuplicateEmailError(AppError):
    status_code = 409
    message = "Email already registered"


class PayloadTooLargeError(AppError):
    status_code = 413
    message = "File too large"


class UnsupportedMediaError(AppError):
    status_code = 415
    message = "Only PDF/PNG/JPEG allowed"


class StorageError(AppError):
    """Blob or database I/O failure. Details are logged, never sent to the client."""

    status_code = 500

    def to_dict(self) -> dict:
        return {"message": "Server error"}


def errors_from_pydantic(exc) -> List[Dict[str, Any]]:
    return [
        {
            "field": ".".join(str(part) for part in err.get("loc", ()) if part not in ("body", "query")),
            "message": err.get("msg", ""),
        }
        for err in exc.errors()
    ]
