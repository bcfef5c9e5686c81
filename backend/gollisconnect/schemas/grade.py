from pydantic import Field, field_validator
from typing import Optional, List
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP

from gollisconnect.models.grade import LetterGrade
from gollisconnect.schemas.base import CamelModel
from gollisconnect.schemas.course import UserSummary


class GradeCreate(CamelModel):
    """
    Body for recording or resubmitting a grade.

    ``student_id`` is the student's registration number, not the user id;
    ``course_id`` is the course's id.
    """
    student_id: str = Field(..., min_length=1)
    course_id: str = Field(..., min_length=1)
    grade: LetterGrade
    semester: str = Field(..., min_length=1)
    academic_year: str = Field(..., min_length=1)

    @field_validator("student_id", "course_id", "semester", "academic_year")
    @classmethod
    def strip_required(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value


class GradeUpdate(CamelModel):
    """Letter is required; omitted student, course or term keep their value"""
    grade: LetterGrade
    student_id: Optional[str] = Field(None, min_length=1)
    course_id: Optional[str] = Field(None, min_length=1)
    semester: Optional[str] = Field(None, min_length=1)
    academic_year: Optional[str] = Field(None, min_length=1)

    @field_validator("student_id", "course_id", "semester", "academic_year")
    @classmethod
    def strip_optional(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value


class GradeCourse(CamelModel):
    id: str
    name: str
    code: str
    credit_hours: Optional[int] = None


class GradeStudent(UserSummary):
    student_id: Optional[str] = None


class GradeResponse(CamelModel):
    id: str
    student: GradeStudent
    course: GradeCourse
    grade: LetterGrade
    semester: str
    academic_year: str
    submitted_by: Optional[UserSummary] = None
    updated_by: Optional[UserSummary] = None
    created_at: datetime
    updated_at: Optional[datetime] = None


class GradeMutationResponse(CamelModel):
    message: str
    grade: GradeResponse


class StudentGradesResponse(CamelModel):
    grades: List[GradeResponse]
    gpa: float

    @field_validator("gpa")
    @classmethod
    def round_for_display(cls, value: float) -> float:
        """GPA is kept at full precision until it leaves the API; exact halves round up"""
        return float(Decimal(value).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))
