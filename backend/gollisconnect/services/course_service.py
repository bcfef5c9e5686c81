"""
Course Service
Course catalog management. Courses are never hard-deleted; deactivation
clears ``is_active`` so existing grades keep their course.
"""

from typing import List, Optional
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from gollisconnect.core.exceptions import (
    CourseNotFoundError,
    DuplicateCourseCodeError,
    InstructorNotFoundError,
)
from gollisconnect.core.logging_config import logger
from gollisconnect.models.course import Course
from gollisconnect.models.user import User, UserRole
from gollisconnect.schemas.course import CourseCreate, CourseUpdate


class CourseService:
    """Service for course catalog operations"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _code_taken(self, code: str, exclude_id: Optional[str] = None) -> bool:
        query = select(Course.id).where(Course.code == code)
        if exclude_id:
            query = query.where(Course.id != exclude_id)
        result = await self.db.execute(query)
        return result.scalar_one_or_none() is not None

    async def _get_instructor(self, instructor_id: str) -> User:
        result = await self.db.execute(
            select(User).where(User.id == instructor_id, User.role == UserRole.FACULTY)
        )
        instructor = result.scalar_one_or_none()
        if not instructor:
            raise InstructorNotFoundError(instructor_id)
        return instructor

    async def _commit(self, code: str) -> None:
        """Commit, translating a unique-code race into a conflict"""
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise DuplicateCourseCodeError(code)

    async def get_course(self, course_id: str) -> Course:
        result = await self.db.execute(
            select(Course)
            .options(selectinload(Course.instructor))
            .where(Course.id == course_id)
            .execution_options(populate_existing=True)
        )
        course = result.scalar_one_or_none()
        if not course:
            raise CourseNotFoundError(course_id)
        return course

    async def create_course(self, data: CourseCreate) -> Course:
        if await self._code_taken(data.code):
            raise DuplicateCourseCodeError(data.code)

        if data.instructor_id:
            await self._get_instructor(data.instructor_id)

        course = Course(
            code=data.code,
            name=data.name,
            description=data.description,
            credit_hours=data.credit_hours,
            department=data.department,
            instructor_id=data.instructor_id,
            prerequisites=list(data.prerequisites),
        )
        self.db.add(course)
        await self._commit(data.code)

        logger.info(f"[Course] Created {course.code} ({course.id})")
        return await self.get_course(course.id)

    async def update_course(self, course_id: str, data: CourseUpdate) -> Course:
        course = await self.get_course(course_id)

        if data.code != course.code and await self._code_taken(data.code, exclude_id=course.id):
            raise DuplicateCourseCodeError(data.code)

        if data.instructor_id and data.instructor_id != course.instructor_id:
            await self._get_instructor(data.instructor_id)

        course.code = data.code
        course.name = data.name
        course.description = data.description
        course.credit_hours = data.credit_hours
        course.department = data.department
        course.instructor_id = data.instructor_id
        course.prerequisites = list(data.prerequisites)
        if data.is_active is not None:
            course.is_active = data.is_active

        await self._commit(data.code)

        logger.info(f"[Course] Updated {course.code} ({course.id})")
        return await self.get_course(course.id)

    async def list_courses(
        self,
        department: Optional[str] = None,
        active: Optional[bool] = None
    ) -> List[Course]:
        query = select(Course).options(selectinload(Course.instructor))
        if department:
            query = query.where(Course.department == department)
        if active is not None:
            query = query.where(Course.is_active == active)

        result = await self.db.execute(query.order_by(Course.code))
        return list(result.scalars().all())

    async def list_instructor_courses(self, instructor_id: str) -> List[Course]:
        await self._get_instructor(instructor_id)

        result = await self.db.execute(
            select(Course)
            .options(selectinload(Course.instructor))
            .where(Course.instructor_id == instructor_id, Course.is_active == True)  # noqa: E712
            .order_by(Course.code)
        )
        return list(result.scalars().all())

    async def deactivate_course(self, course_id: str) -> Course:
        course = await self.get_course(course_id)
        course.is_active = False
        await self.db.commit()

        logger.info(f"[Course] Deactivated {course.code} ({course.id})")
        return course
