from sqlalchemy import Column, String, DateTime, Enum as SQLEnum, ForeignKey, UniqueConstraint, Index
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from gollisconnect.core.database import Base
from gollisconnect.core.types import GUID, generate_uuid


class LetterGrade(str, enum.Enum):
    """Letter grades and the points they carry"""
    A = "A"
    B = "B"
    C = "C"
    D = "D"
    F = "F"

    @property
    def points(self) -> float:
        return GRADE_POINTS[self]


GRADE_POINTS = {
    LetterGrade.A: 4.0,
    LetterGrade.B: 3.0,
    LetterGrade.C: 2.0,
    LetterGrade.D: 1.0,
    LetterGrade.F: 0.0,
}


class Grade(Base):
    """One grade per (student, course, semester, academic_year)"""
    __tablename__ = "grades"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    student_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    course_id = Column(GUID, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False)
    grade = Column(SQLEnum(LetterGrade), nullable=False)
    semester = Column(String(50), nullable=False)
    academic_year = Column(String(20), nullable=False)

    submitted_by_id = Column(GUID, ForeignKey("users.id"), nullable=False)
    updated_by_id = Column(GUID, ForeignKey("users.id"), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    student = relationship("User", foreign_keys=[student_id])
    course = relationship("Course")
    submitted_by = relationship("User", foreign_keys=[submitted_by_id])
    updated_by = relationship("User", foreign_keys=[updated_by_id])

    __table_args__ = (
        UniqueConstraint(
            "student_id", "course_id", "semester", "academic_year",
            name="uq_grades_student_course_term"
        ),
        Index("ix_grades_course_term", "course_id", "semester", "academic_year"),
    )

    def __repr__(self):
        return f"<Grade {self.student_id}/{self.course_id} {self.semester} {self.academic_year}: {self.grade}>"
