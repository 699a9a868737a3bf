"""
Base exception classes for application-wide error handling.

Every domain error raised by the portal inherits from BaseApplicationError,
which carries a machine-readable error code, optional details, and an
``is_retryable`` flag. The job queue reads that flag to decide whether a
failed job is retried with backoff or parked immediately.

Exception Hierarchy:
    BaseApplicationError (base, retryable)
    ├── ValidationError - Invalid input or job payload (not retryable)
    ├── NotFoundError - Referenced record missing (not retryable)
    ├── ConflictError - State conflicts (not retryable)
    └── ExternalServiceError - Third-party service failures (retryable)

Usage:
    from core.exceptions import NotFoundError

    enrollment = Enrollment.objects.filter(id=enrollment_id).first()
    if enrollment is None:
        raise NotFoundError(
            f"Enrollment {enrollment_id} not found",
            error_code="ENROLLMENT_NOT_FOUND",
            details={"enrollment_id": enrollment_id},
        )

Note:
    Unknown exceptions (database hiccups, bugs) are treated as retryable
    by the job queue. Raise a non-retryable subclass when retrying cannot
    possibly help.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any


class BaseApplicationError(Exception):
    """
    Base exception for all application-specific errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable code for client-side handling
        details: Additional error context (ids, upstream status, etc.)
        is_retryable: Whether repeating the operation may succeed

    Example:
        try:
            processor.verify_payment(ctx)
        except BaseApplicationError as e:
            logger.warning(f"Verification failed: {e.error_code}")
    """

    default_error_code: str = "APPLICATION_ERROR"
    is_retryable: bool = True

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert exception to dictionary for API responses and job results.

        Returns:
            Dict with error, error_code, and (when present) details keys
        """
        result: dict[str, Any] = {
            "error": self.message,
            "error_code": self.error_code,
        }
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


class ValidationError(BaseApplicationError):
    """
    Raised when input or a job payload is invalid.

    Example:
        if not reference and not payment_id:
            raise ValidationError(
                "Either reference or payment_id is required",
                error_code="MISSING_PAYMENT_IDENTIFIER",
            )
    """

    default_error_code: str = "VALIDATION_ERROR"
    is_retryable: bool = False


class NotFoundError(BaseApplicationError):
    """
    Raised when a referenced record does not exist.

    Inside a job this signals a corrupted trigger rather than a transient
    condition, so the job is failed without further attempts.

    Example:
        raise NotFoundError(
            f"Payment {reference} not found",
            error_code="PAYMENT_NOT_FOUND",
            details={"reference": reference},
        )
    """

    default_error_code: str = "NOT_FOUND"
    is_retryable: bool = False


class ConflictError(BaseApplicationError):
    """
    Raised when an operation conflicts with current resource state.

    Use for:
    - Invalid state transitions
    - Preconditions that will not change by retrying

    Example:
        if payment.status != PaymentStatus.SUCCESS:
            raise ConflictError(
                "Payment is not successful",
                error_code="PAYMENT_NOT_SUCCESSFUL",
                details={"status": payment.status},
            )
    """

    default_error_code: str = "CONFLICT"
    is_retryable: bool = False


class ExternalServiceError(BaseApplicationError):
    """
    Raised when an external service call fails.

    Use for:
    - Payment gateway failures
    - LMS or incubator API failures
    - Network timeouts and 5xx responses

    Subclasses flip ``is_retryable`` to False for permanent failures
    such as rejected credentials or malformed requests.

    Example:
        raise ExternalServiceError(
            "Gateway unavailable",
            error_code="GATEWAY_UNAVAILABLE",
            details={"service": "paystack", "status_code": 503},
        )
    """

    default_error_code: str = "EXTERNAL_SERVICE_ERROR"
    is_retryable: bool = True

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
        retryable: bool | None = None,
    ):
        super().__init__(message, error_code=error_code, details=details)
        if retryable is not None:
            self.is_retryable = retryable
