"""
Custom Exceptions for SBTE Portal
=================================

Raise these from endpoints and services; the handler registered in
``app.main`` renders them as ``{"message", "code", "details"}`` with the
exception's HTTP status.

Usage:
    from app.core.exceptions import ResourceNotFoundError

    if not department:
        raise ResourceNotFoundError("Department not found.")
"""

from typing import Optional, Any, Dict, List


class PortalError(Exception):
    """Base exception for all portal errors"""

    status_code = 500

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "message": self.message,
            "code": self.code,
        }
        if self.details:
            body["details"] = self.details
        return body


# ============================================
# Authentication & Authorization Errors
# ============================================

class AuthenticationError(PortalError):
    """User authentication failed"""

    status_code = 401

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(message, code="AUTH_FAILED")


class AuthorizationError(PortalError):
    """User not authorized for this action"""

    status_code = 403

    def __init__(self, message: str = "Forbidden"):
        super().__init__(message, code="NOT_AUTHORIZED")


class AccountLockedError(AuthorizationError):
    """Account temporarily locked after repeated failed logins"""

    def __init__(self, locked_until: str, remaining_minutes: int):
        super().__init__(
            f"Account is locked. Try again in {remaining_minutes} minutes."
        )
        self.code = "ACCOUNT_LOCKED"
        self.details = {"lockedUntil": locked_until, "remainingTime": remaining_minutes}


# ============================================
# Resource Errors (404-type)
# ============================================

class ResourceNotFoundError(PortalError):
    """Requested record does not exist"""

    status_code = 404

    def __init__(self, message: str = "Not found"):
        super().__init__(message, code="NOT_FOUND")


# ============================================
# Validation Errors (400-type)
# ============================================

class ValidationError(PortalError):
    """Input validation failed"""

    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(message, code="VALIDATION_ERROR", details=details)


class BatchValidationError(ValidationError):
    """Several independent problems collected before any write"""

    def __init__(self, message: str, errors: List[str]):
        super().__init__(message)
        self.code = "BATCH_VALIDATION_ERROR"
        self.details = {"errors": errors}

    def to_dict(self) -> Dict[str, Any]:
        body = super().to_dict()
        body["errors"] = self.details["errors"]
        return body


class InvalidFileTypeError(ValidationError):
    """File type not allowed"""

    def __init__(self, file_type: str, allowed_types: list):
        super().__init__(
            f"File type '{file_type}' not allowed. Allowed: {', '.join(allowed_types)}"
        )
        self.code = "INVALID_FILE_TYPE"
        self.details = {"file_type": file_type, "allowed_types": allowed_types}


class ConflictError(PortalError):
    """Record already exists"""

    status_code = 409

    def __init__(self, message: str):
        super().__init__(message, code="CONFLICT")


class TooManyRequestsError(PortalError):
    """Per-account throttling (distinct from the IP rate limiter)"""

    status_code = 429

    def __init__(self, message: str, retry_after_minutes: Optional[int] = None):
        super().__init__(message, code="TOO_MANY_REQUESTS")
        if retry_after_minutes is not None:
            self.details["retryAfterMinutes"] = retry_after_minutes


# ============================================
# Payment Errors
# ============================================

class PaymentError(PortalError):
    """Payment operation failed"""

    status_code = 400

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="PAYMENT_ERROR", details=details)


class InvalidSignatureError(PaymentError):
    """Razorpay signature did not match"""

    def __init__(self, message: str = "Invalid payment signature"):
        super().__init__(message)
        self.code = "INVALID_SIGNATURE"


# ============================================
# Storage Errors
# ============================================

class StorageError(PortalError):
    """Storage operation failed"""

    def __init__(self, message: str):
        super().__init__(message, code="STORAGE_ERROR")


class DocumentGenerationError(PortalError):
    """PDF rendering failed"""

    def __init__(self, message: str, doc_type: Optional[str] = None):
        super().__init__(message, code="DOCUMENT_GENERATION_FAILED")
        if doc_type:
            self.details["doc_type"] = doc_type
