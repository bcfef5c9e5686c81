"""
Grade Service
Grade recording and GPA computation.

A student has at most one grade per (course, semester, academic year). The
unique constraint on the grades table is the authoritative guard: the lookup
done before insert only produces a nicer error, and an IntegrityError raised
at flush time is reported as the same conflict.
"""

from typing import List, Optional, Tuple
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload, aliased

from gollisconnect.core.exceptions import (
    CourseNotFoundError,
    DuplicateGradeError,
    GradeNotFoundError,
    StudentNotFoundError,
)
from gollisconnect.core.logging_config import logger
from gollisconnect.models.course import Course
from gollisconnect.models.grade import Grade, LetterGrade, GRADE_POINTS
from gollisconnect.models.user import User, UserRole
from gollisconnect.schemas.grade import GradeCreate, GradeUpdate
from gollisconnect.services.notification_service import NotificationService, notification_service


# Used when a course carries no credit hours
DEFAULT_CREDIT_HOURS = 3


def compute_gpa(entries: List[Tuple[LetterGrade, Optional[int]]]) -> float:
    """
    Credit-weighted grade point average.

    ``entries`` are (letter, credit_hours) pairs. Returns 0.0 for no entries.
    """
    total_points = 0.0
    total_credits = 0
    for letter, credit_hours in entries:
        credits = credit_hours or DEFAULT_CREDIT_HOURS
        total_points += GRADE_POINTS[LetterGrade(letter)] * credits
        total_credits += credits

    if total_credits == 0:
        return 0.0
    return total_points / total_credits


class GradeService:
    """Service for recording grades and computing GPA"""

    def __init__(self, db: AsyncSession, notifier: Optional[NotificationService] = None):
        self.db = db
        self.notifier = notifier or notification_service

    # =====================================================
    # LOOKUPS
    # =====================================================

    def _with_relations(self, query):
        return query.options(
            selectinload(Grade.student),
            selectinload(Grade.course),
            selectinload(Grade.submitted_by),
            selectinload(Grade.updated_by),
        )

    async def get_student_by_registration(self, student_id: str) -> User:
        """Resolve a registration number to a student-role user"""
        result = await self.db.execute(
            select(User).where(User.student_id == student_id, User.role == UserRole.STUDENT)
        )
        student = result.scalar_one_or_none()
        if not student:
            raise StudentNotFoundError(student_id)
        return student

    async def _get_course(self, course_id: str) -> Course:
        result = await self.db.execute(select(Course).where(Course.id == course_id))
        course = result.scalar_one_or_none()
        if not course:
            raise CourseNotFoundError(course_id)
        return course

    async def _find_grade(
        self,
        student_pk: str,
        course_pk: str,
        semester: str,
        academic_year: str
    ) -> Optional[Grade]:
        result = await self.db.execute(
            select(Grade).where(
                Grade.student_id == student_pk,
                Grade.course_id == course_pk,
                Grade.semester == semester,
                Grade.academic_year == academic_year,
            )
        )
        return result.scalar_one_or_none()

    async def get_grade(self, grade_id: str) -> Grade:
        result = await self.db.execute(
            self._with_relations(select(Grade))
            .where(Grade.id == grade_id)
            .execution_options(populate_existing=True)
        )
        grade = result.scalar_one_or_none()
        if not grade:
            raise GradeNotFoundError(grade_id)
        return grade

    async def _commit(self) -> None:
        try:
            await self.db.flush()
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise DuplicateGradeError()

    # =====================================================
    # MUTATIONS
    # =====================================================

    async def record_grade(self, data: GradeCreate, submitted_by: User) -> Grade:
        student = await self.get_student_by_registration(data.student_id)
        course = await self._get_course(data.course_id)

        if await self._find_grade(student.id, course.id, data.semester, data.academic_year):
            raise DuplicateGradeError()

        grade = Grade(
            student_id=student.id,
            course_id=course.id,
            grade=data.grade,
            semester=data.semester,
            academic_year=data.academic_year,
            submitted_by_id=submitted_by.id,
        )
        self.db.add(grade)
        await self._commit()

        logger.info(
            f"[Grade] {submitted_by.email} recorded {data.grade.value} for "
            f"{student.student_id} in {course.code} ({data.semester} {data.academic_year})"
        )

        grade = await self.get_grade(grade.id)
        await self.notifier.notify_grade_posted(student, course, grade)
        return grade

    async def update_grade(self, grade_id: str, data: GradeUpdate, updated_by: User) -> Grade:
        grade = await self.get_grade(grade_id)
        previous_letter = grade.grade

        student = grade.student
        if data.student_id and data.student_id != student.student_id:
            student = await self.get_student_by_registration(data.student_id)

        course = grade.course
        if data.course_id and data.course_id != course.id:
            course = await self._get_course(data.course_id)

        semester = data.semester or grade.semester
        academic_year = data.academic_year or grade.academic_year

        existing = await self._find_grade(student.id, course.id, semester, academic_year)
        if existing and existing.id != grade.id:
            raise DuplicateGradeError()

        grade.student_id = student.id
        grade.course_id = course.id
        grade.semester = semester
        grade.academic_year = academic_year
        grade.grade = data.grade
        grade.updated_by_id = updated_by.id
        await self._commit()

        logger.info(f"[Grade] {updated_by.email} updated grade {grade_id}: {previous_letter.value} -> {data.grade.value}")

        grade = await self.get_grade(grade_id)
        if data.grade != previous_letter:
            await self.notifier.notify_grade_posted(student, course, grade)
        return grade

    async def delete_grade(self, grade_id: str) -> None:
        result = await self.db.execute(select(Grade).where(Grade.id == grade_id))
        grade = result.scalar_one_or_none()
        if not grade:
            raise GradeNotFoundError(grade_id)

        await self.db.delete(grade)
        await self.db.commit()
        logger.info(f"[Grade] Deleted grade {grade_id}")

    # =====================================================
    # QUERIES
    # =====================================================

    async def calculate_gpa(self, student_pk: str) -> float:
        """Full-precision GPA over every grade the student has"""
        result = await self.db.execute(
            select(Grade.grade, Course.credit_hours)
            .join(Course, Grade.course_id == Course.id)
            .where(Grade.student_id == student_pk)
        )
        return compute_gpa([(row[0], row[1]) for row in result.all()])

    def _filtered(self, query, semester: Optional[str], academic_year: Optional[str]):
        if semester:
            query = query.where(Grade.semester == semester)
        if academic_year:
            query = query.where(Grade.academic_year == academic_year)
        return query

    async def list_grades(
        self,
        student_pk: str,
        semester: Optional[str] = None,
        academic_year: Optional[str] = None
    ) -> List[Grade]:
        """Grades grouped by term: semester desc, then academic year desc"""
        query = self._filtered(
            self._with_relations(select(Grade)).where(Grade.student_id == student_pk),
            semester, academic_year
        )
        result = await self.db.execute(
            query.order_by(Grade.semester.desc(), Grade.academic_year.desc(), Grade.created_at.desc())
        )
        return list(result.scalars().all())

    async def list_recent_grades(
        self,
        student_pk: str,
        semester: Optional[str] = None,
        academic_year: Optional[str] = None
    ) -> List[Grade]:
        """Most recently recorded first"""
        query = self._filtered(
            self._with_relations(select(Grade)).where(Grade.student_id == student_pk),
            semester, academic_year
        )
        result = await self.db.execute(query.order_by(Grade.created_at.desc()))
        return list(result.scalars().all())

    async def list_course_grades(
        self,
        course_id: str,
        semester: Optional[str] = None,
        academic_year: Optional[str] = None
    ) -> List[Grade]:
        await self._get_course(course_id)

        student = aliased(User)
        query = self._filtered(
            self._with_relations(select(Grade))
            .join(student, Grade.student_id == student.id)
            .where(Grade.course_id == course_id),
            semester, academic_year
        )
        result = await self.db.execute(query.order_by(student.last_name, student.first_name))
        return list(result.scalars().all())

    async def list_submitted_grades(
        self,
        faculty_pk: str,
        semester: Optional[str] = None,
        academic_year: Optional[str] = None
    ) -> List[Grade]:
        """Grades a faculty member recorded, newest first"""
        query = self._filtered(
            self._with_relations(select(Grade)).where(Grade.submitted_by_id == faculty_pk),
            semester, academic_year
        )
        result = await self.db.execute(query.order_by(Grade.created_at.desc()))
        return list(result.scalars().all())

    async def get_grade_report(
        self,
        student_pk: str,
        semester: Optional[str] = None,
        academic_year: Optional[str] = None
    ) -> Tuple[List[Grade], float]:
        """By-term grades (optionally one term) with the cumulative GPA"""
        grades = await self.list_grades(student_pk, semester, academic_year)
        gpa = await self.calculate_gpa(student_pk)
        return grades, gpa
