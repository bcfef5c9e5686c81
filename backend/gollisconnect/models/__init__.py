# Re-export all models for convenient imports
from gollisconnect.models.user import User, UserRole
from gollisconnect.models.course import Course
from gollisconnect.models.grade import Grade, LetterGrade, GRADE_POINTS
from gollisconnect.models.payment import Payment, PaymentMethod, PaymentStatus

__all__ = [
    # User
    "User",
    "UserRole",
    # Academic records
    "Course",
    "Grade",
    "LetterGrade",
    "GRADE_POINTS",
    # Payments
    "Payment",
    "PaymentMethod",
    "PaymentStatus",
]
