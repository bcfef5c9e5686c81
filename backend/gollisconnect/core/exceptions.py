"""
Custom Exceptions for GollisConnect
===================================

Services raise these; the API layer maps them to HTTP responses through
``register_exception_handlers``.

Usage:
    from gollisconnect.core.exceptions import CourseNotFoundError, ConflictError

    if not course:
        raise CourseNotFoundError(course_id)
"""

from typing import Optional, Any, Dict

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse


class GollisConnectError(Exception):
    """Base exception for all GollisConnect errors"""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

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
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details
        }


# ============================================
# Authentication & Authorization Errors
# ============================================

class AuthenticationError(GollisConnectError):
    """User authentication failed"""

    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(message, code="AUTH_FAILED")


class AuthorizationError(GollisConnectError):
    """User not authorized for this action"""

    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, message: str = "Not authorized"):
        super().__init__(message, code="NOT_AUTHORIZED")


class InvalidTokenError(AuthenticationError):
    """JWT token is invalid or expired"""

    def __init__(self, message: str = "Token is not valid"):
        super().__init__(message)
        self.code = "INVALID_TOKEN"


# ============================================
# Resource Errors (404-type)
# ============================================

class ResourceNotFoundError(GollisConnectError):
    """Base class for not found errors"""

    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(
            f"{resource_type} not found",
            code=f"{resource_type.upper()}_NOT_FOUND",
            details={"resource_type": resource_type, "resource_id": resource_id}
        )


class UserNotFoundError(ResourceNotFoundError):
    def __init__(self, user_id: str):
        super().__init__("User", user_id)


class StudentNotFoundError(ResourceNotFoundError):
    def __init__(self, student_id: str):
        super().__init__("Student", student_id)


class InstructorNotFoundError(ResourceNotFoundError):
    def __init__(self, instructor_id: str):
        super().__init__("Instructor", instructor_id)


class CourseNotFoundError(ResourceNotFoundError):
    def __init__(self, course_id: str):
        super().__init__("Course", course_id)


class GradeNotFoundError(ResourceNotFoundError):
    def __init__(self, grade_id: str):
        super().__init__("Grade", grade_id)


class PaymentNotFoundError(ResourceNotFoundError):
    def __init__(self, transaction_id: str):
        super().__init__("Payment", transaction_id)


# ============================================
# Conflict Errors (409-type)
# ============================================

class ConflictError(GollisConnectError):
    """A uniqueness rule was violated"""

    status_code = status.HTTP_409_CONFLICT

    def __init__(self, message: str, code: str = "CONFLICT", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code=code, details=details)


class DuplicateGradeError(ConflictError):
    def __init__(self):
        super().__init__(
            "Grade already exists for this student and course",
            code="GRADE_ALREADY_EXISTS"
        )


class DuplicateCourseCodeError(ConflictError):
    def __init__(self, code: str):
        super().__init__(
            "Course with this code already exists",
            code="COURSE_CODE_EXISTS",
            details={"course_code": code}
        )


class EmailInUseError(ConflictError):
    def __init__(self, email: str):
        super().__init__(
            "Email is already in use",
            code="EMAIL_IN_USE",
            details={"email": email}
        )


class DuplicateStudentIdError(ConflictError):
    def __init__(self, student_id: str):
        super().__init__(
            "Student ID is already registered",
            code="STUDENT_ID_IN_USE",
            details={"student_id": student_id}
        )


class PaymentAlreadyProcessedError(ConflictError):
    """Verification requested for a payment in a terminal state"""

    def __init__(self, transaction_id: str, payment_status: str):
        super().__init__(
            f"Payment already {payment_status}",
            code="PAYMENT_ALREADY_PROCESSED",
            details={"transaction_id": transaction_id, "status": payment_status}
        )


# ============================================
# Validation Errors (400-type)
# ============================================

class ValidationError(GollisConnectError):
    """Input validation failed"""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(message, code="VALIDATION_ERROR", details=details)


# ============================================
# Upstream Provider Errors
# ============================================

class UpstreamServiceError(GollisConnectError):
    """Notification or payment provider call failed"""

    status_code = status.HTTP_502_BAD_GATEWAY

    def __init__(self, provider: str, message: str):
        super().__init__(
            f"{provider} error: {message}",
            code="UPSTREAM_FAILURE",
            details={"provider": provider}
        )


class PaymentVerificationFailedError(GollisConnectError):
    """The gateway did not confirm settlement; the payment is now failed"""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, transaction_id: str):
        super().__init__(
            "Payment verification failed",
            code="PAYMENT_VERIFICATION_FAILED",
            details={"transaction_id": transaction_id}
        )


# ============================================
# Helper function for API responses
# ============================================

def error_response(error: GollisConnectError) -> Dict[str, Any]:
    """Convert exception to API error response format"""
    return {
        "success": False,
        "detail": error.message,
        "error": error.to_dict()
    }


async def gollisconnect_error_handler(request: Request, exc: GollisConnectError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthenticationError) else None
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(exc),
        headers=headers
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(GollisConnectError, gollisconnect_error_handler)
