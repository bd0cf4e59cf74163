from fastapi import HTTPException
from salesdesk.constants.error_codes import ErrorCode


class AppException(HTTPException):
    def __init__(
        self,
        status_code: int,
        message: str,
        error_code: ErrorCode,
        details: dict | None = None,
    ):
        super().__init__(status_code=status_code, detail=message)
        self.error_code = error_code
        self.details = details

    @property
    def message(self) -> str:
        return self.detail


# =====================================================
# WORKFLOW
# =====================================================
class InvalidTransition(AppException):
    def __init__(self, current, requested):
        super().__init__(
            409,
            f"Cannot move from '{current}' to '{requested}'",
            ErrorCode.INVALID_TRANSITION,
            {"current": str(current), "requested": str(requested)},
        )
        self.current = current
        self.requested = requested


class AlreadyInTargetState(AppException):
    def __init__(self, status):
        super().__init__(
            409,
            f"Quotation is already {status}",
            ErrorCode.ALREADY_IN_TARGET_STATE,
            {"status": str(status)},
        )
        self.status = status


class PermissionDenied(AppException):
    def __init__(self, role: str, action: str):
        super().__init__(
            403,
            "Permission denied",
            ErrorCode.PERMISSION_DENIED,
            {"role": role, "action": action},
        )


# =====================================================
# CART
# =====================================================
class StaleCurrencyState(AppException):
    """A currency-dependent mutation hit a session with a staged change."""

    def __init__(self, pending: dict):
        super().__init__(
            409,
            "Confirm or cancel the pending currency change first",
            ErrorCode.STALE_CURRENCY_STATE,
            {"pending_change": pending},
        )


class ValidationError(AppException):
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(400, message, ErrorCode.VALIDATION_ERROR, details)


class NotFound(AppException):
    def __init__(self, message: str, error_code: ErrorCode = ErrorCode.NOT_FOUND):
        super().__init__(404, message, error_code)


# =====================================================
# COLLABORATORS
# =====================================================
class NetworkError(AppException):
    def __init__(
        self,
        message: str = "Upstream service unavailable",
        status_code: int = 502,
        error_code: ErrorCode = ErrorCode.NETWORK_ERROR,
    ):
        super().__init__(status_code, message, error_code, {"retryable": True})


class Timeout(NetworkError):
    def __init__(self, operation: str):
        super().__init__(
            f"{operation} did not complete in time",
            504,
            ErrorCode.TIMEOUT,
        )
        self.operation = operation


class CartLocked(AppException):
    def __init__(self, status, action: str):
        super().__init__(
            409,
            f"Quotation in '{status}' cannot be changed ({action})",
            ErrorCode.CART_LOCKED,
            {"status": str(status), "action": action},
        )
