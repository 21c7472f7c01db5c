from typing import Any, Dict, Optional


class SheetBoardError(Exception):
    """Base class for every error raised by the service core."""

    status_code = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        payload = {"success": False, "message": self.message}
        if self.details:
            payload["errors"] = self.details
        return payload


class ValidationError(SheetBoardError, ValueError):
    """Bad or missing input: no file, empty table, unknown column."""

    status_code = 400


class ProjectionError(ValidationError):
    pass


class ParseError(SheetBoardError, ValueError):
    """The upload is not a well-formed spreadsheet."""

    status_code = 400


class NotFoundError(SheetBoardError, LookupError):
    """Record absent, or owned by somebody else. The two are never told apart."""

    status_code = 404


class ConflictError(SheetBoardError, ValueError):
    status_code = 409


class AuthenticationError(SheetBoardError):
    status_code = 401

    def __init__(self, message: str = "Could not validate credentials"):
        super().__init__(message)


class AuthorizationError(SheetBoardError):
    status_code = 403

    def __init__(self, message: str = "Access denied. Admin privileges required."):
        super().__init__(message)
