"""
Custom Exceptions for BioCMS
============================

Every expected failure carries an HTTP status, a safe message and a
machine-readable code. The exception handlers in ``biocms.main`` turn them
into the standard error envelope.

Usage:
    from biocms.core.exceptions import NotFoundError

    if not biography:
        raise NotFoundError("Biography", slug)
"""

from typing import Optional, Any, Dict


class BioCMSError(Exception):
    """Base exception for all BioCMS errors"""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None,
        status_code: Optional[int] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)

    @property
    def is_operational(self) -> bool:
        """Expected client-side failures (4xx) as opposed to faults"""
        return self.status_code < 500

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details
        }


# ============================================
# Request Errors (400-type)
# ============================================

class InvalidQueryError(BioCMSError):
    """List query parameters could not be turned into a query"""

    status_code = 400

    def __init__(self, message: str, parameter: Optional[str] = None):
        details = {"parameter": parameter} if parameter else {}
        super().__init__(message, code="INVALID_QUERY", details=details)


class ValidationError(BioCMSError):
    """Input validation failed"""

    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(message, code="VALIDATION_ERROR", details=details)


class ConflictError(BioCMSError):
    """Unique value already taken (email, slug, name)"""

    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(message, code="DUPLICATE_VALUE", details=details)


# ============================================
# Authentication Errors (401-type)
# ============================================

class AuthError(BioCMSError):
    """Authentication failed"""

    status_code = 401

    def __init__(self, message: str = "Authentication failed", code: str = "AUTH_FAILED"):
        super().__init__(message, code=code)


class UnauthenticatedError(AuthError):
    """No credentials were presented"""

    def __init__(self, message: str = "You are not logged in. Please log in to get access."):
        super().__init__(message, code="UNAUTHENTICATED")


class InvalidTokenError(AuthError):
    """JWT token is malformed, expired or has a bad signature"""

    def __init__(self, message: str = "Invalid token. Please log in again."):
        super().__init__(message, code="INVALID_TOKEN")


class PrincipalGoneError(AuthError):
    """Token subject no longer exists"""

    def __init__(self):
        super().__init__("The user belonging to this token no longer exists.", code="PRINCIPAL_GONE")


class AccountDisabledError(AuthError):
    """Principal has been deactivated"""

    def __init__(self):
        super().__init__("Your account has been deactivated.", code="ACCOUNT_DISABLED")


class StaleCredentialsError(AuthError):
    """Credentials changed after the token was issued"""

    def __init__(self):
        super().__init__("Password was changed recently. Please log in again.", code="STALE_CREDENTIALS")


class InvalidCredentialsError(AuthError):
    """Login with wrong email or password"""

    def __init__(self):
        super().__init__("Incorrect email or password", code="INVALID_CREDENTIALS")


# ============================================
# Authorization Errors (403-type)
# ============================================

class ForbiddenError(BioCMSError):
    """Principal is not allowed to perform this action"""

    status_code = 403

    def __init__(self, message: str = "You do not have permission to perform this action", code: str = "FORBIDDEN"):
        super().__init__(message, code=code)


class SelfActionForbiddenError(ForbiddenError):
    """Admin tried to alter their own account through an admin route"""

    def __init__(self, action: str):
        super().__init__(f"You cannot {action} your own account", code="SELF_ACTION_FORBIDDEN")
        self.details = {"action": action}


# ============================================
# Resource Errors (404-type)
# ============================================

class NotFoundError(BioCMSError):
    """Requested resource does not exist"""

    status_code = 404

    def __init__(self, resource_type: str, resource_id: Optional[str] = None):
        if resource_id is not None:
            message = f"No {resource_type.lower()} found with identifier '{resource_id}'"
        else:
            message = f"No {resource_type.lower()} found"
        super().__init__(
            message,
            code=f"{resource_type.upper().replace(' ', '_')}_NOT_FOUND",
            details={"resource_type": resource_type, "resource_id": resource_id}
        )


# ============================================
# Throttling Errors (429-type)
# ============================================

class RateLimitedError(BioCMSError):
    """Client exceeded a rate limit policy"""

    status_code = 429

    def __init__(self, message: str, retry_after: int = 60, policy: Optional[str] = None):
        super().__init__(message, code="RATE_LIMITED", details={"retry_after": retry_after, "policy": policy})
        self.retry_after = retry_after


# ============================================
# Faults (500-type)
# ============================================

class FaultError(BioCMSError):
    """Unexpected internal failure; message is never shown to clients"""

    status_code = 500

    def __init__(self, message: str = "Something went wrong", code: str = "INTERNAL_ERROR"):
        super().__init__(message, code=code)


class QueryTimeoutError(FaultError):
    """Database query exceeded the per-request deadline"""

    def __init__(self, resource: str, timeout: float):
        super().__init__(f"Query on {resource} exceeded {timeout}s", code="QUERY_TIMEOUT")
        self.details = {"resource": resource, "timeout": timeout}
