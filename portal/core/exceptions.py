from typing import Any, Dict, Optional


class AppException(Exception):
    def __init__(
        self,
        message: str,
        status_code: int = 400,
        error_code: str = "BUSINESS_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details
        super().__init__(self.message)


class ValidationError(AppException):
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=400,
            error_code="VALIDATION_ERROR",
            details=details
        )


class NotFoundError(AppException):
    def __init__(self, message: str = "Resource not found"):
        super().__init__(
            message=message,
            status_code=404,
            error_code="NOT_FOUND"
        )


class AuthenticationError(AppException):
    def __init__(self, message: str = "Could not validate credentials"):
        super().__init__(
            message=message,
            status_code=401,
            error_code="AUTH_FAILED"
        )


class AccessDeniedError(AppException):
    """Custom permission error. Named AccessDeniedError to avoid shadowing Python's built-in PermissionError."""
    def __init__(self, message: str = "Insufficient permissions", details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=403,
            error_code="PERMISSION_DENIED",
            details=details
        )


class InvalidTransitionError(AppException):
    def __init__(self, current: str, requested: str, reason: Optional[str] = None):
        message = f"Cannot change induction status from '{current}' to '{requested}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(
            message=message,
            status_code=400,
            error_code="INVALID_STATUS_TRANSITION",
            details={"current": current, "requested": requested}
        )


class EmailDeliveryError(AppException):
    def __init__(self, message: str):
        super().__init__(
            message=message,
            status_code=502,
            error_code="EMAIL_DELIVERY_FAILED"
        )


class StorageError(AppException):
    def __init__(self, message: str):
        super().__init__(
            message=message,
            status_code=502,
            error_code="STORAGE_UNAVAILABLE"
        )
