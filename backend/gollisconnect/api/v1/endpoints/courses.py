from fastapi import APIRouter, Depends, Query, status
from typing import List, Optional

from gollisconnect.models.user import User
from gollisconnect.schemas.course import CourseCreate, CourseUpdate, CourseResponse, CourseMutationResponse
from gollisconnect.modules.auth.dependencies import (
    get_current_user,
    get_current_admin,
    get_course_service,
)
from gollisconnect.services.course_service import CourseService


router = APIRouter()


@router.post("", response_model=CourseMutationResponse, status_code=status.HTTP_201_CREATED)
async def create_course(
    course_data: CourseCreate,
    current_user: User = Depends(get_current_admin),
    service: CourseService = Depends(get_course_service)
):
    """Create a course (admin only)"""
    course = await service.create_course(course_data)
    return CourseMutationResponse(
        message="Course created successfully",
        course=CourseResponse.model_validate(course)
    )


@router.put("/{course_id}", response_model=CourseMutationResponse)
async def update_course(
    course_id: str,
    course_data: CourseUpdate,
    current_user: User = Depends(get_current_admin),
    service: CourseService = Depends(get_course_service)
):
    """Update a course (admin only)"""
    course = await service.update_course(course_id, course_data)
    return CourseMutationResponse(
        message="Course updated successfully",
        course=CourseResponse.model_validate(course)
    )


@router.get("", response_model=List[CourseResponse])
async def list_courses(
    department: Optional[str] = Query(None),
    active: Optional[bool] = Query(None),
    current_user: User = Depends(get_current_user),
    service: CourseService = Depends(get_course_service)
):
    """List courses ordered by code, optionally filtered by department or active flag"""
    return await service.list_courses(department=department, active=active)


@router.get("/instructor/{instructor_id}", response_model=List[CourseResponse])
async def list_instructor_courses(
    instructor_id: str,
    current_user: User = Depends(get_current_user),
    service: CourseService = Depends(get_course_service)
):
    return await service.list_instructor_courses(instructor_id)


@router.get("/{course_id}", response_model=CourseResponse)
async def get_course(
    course_id: str,
    current_user: User = Depends(get_current_user),
    service: CourseService = Depends(get_course_service)
):
    return await service.get_course(course_id)


@router.delete("/{course_id}")
async def deactivate_course(
    course_id: str,
    current_user: User = Depends(get_current_admin),
    service: CourseService = Depends(get_course_service)
):
    """Soft delete: the course is marked inactive and kept"""
    await service.deactivate_course(course_id)
    return {"message": "Course deactivated successfully"}
