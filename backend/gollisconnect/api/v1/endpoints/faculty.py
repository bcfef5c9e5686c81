from fastapi import APIRouter, Depends, Query
from typing import List, Optional

from gollisconnect.models.user import User
from gollisconnect.schemas.auth import UserResponse
from gollisconnect.schemas.grade import GradeResponse, StudentGradesResponse
from gollisconnect.schemas.user import ProfileUpdate, ProfileUpdateResponse, StudentListItem
from gollisconnect.modules.auth.dependencies import (
    get_current_faculty,
    get_grade_service,
    get_user_service,
)
from gollisconnect.services.grade_service import GradeService
from gollisconnect.services.user_service import UserService


router = APIRouter()


@router.get("/profile", response_model=UserResponse)
async def get_profile(current_user: User = Depends(get_current_faculty)):
    return current_user


@router.put("/profile", response_model=ProfileUpdateResponse)
async def update_profile(
    profile_data: ProfileUpdate,
    current_user: User = Depends(get_current_faculty),
    service: UserService = Depends(get_user_service)
):
    user = await service.update_profile(current_user, profile_data)
    return ProfileUpdateResponse(
        message="Profile updated successfully",
        user=UserResponse.model_validate(user)
    )


@router.get("/students", response_model=List[StudentListItem])
async def list_students(
    current_user: User = Depends(get_current_faculty),
    service: UserService = Depends(get_user_service)
):
    return await service.list_students()


@router.get("/students/{user_id}", response_model=UserResponse)
async def get_student(
    user_id: str,
    current_user: User = Depends(get_current_faculty),
    service: UserService = Depends(get_user_service)
):
    return await service.get_student(user_id)


@router.get("/students/{user_id}/grades", response_model=StudentGradesResponse)
async def get_student_grade_report(
    user_id: str,
    semester: Optional[str] = Query(None),
    academic_year: Optional[str] = Query(None, alias="academicYear"),
    current_user: User = Depends(get_current_faculty),
    users: UserService = Depends(get_user_service),
    grades: GradeService = Depends(get_grade_service)
):
    student = await users.get_student(user_id)
    report, gpa = await grades.get_grade_report(student.id, semester, academic_year)
    return StudentGradesResponse(
        grades=[GradeResponse.model_validate(g) for g in report],
        gpa=gpa
    )


@router.get("/grades", response_model=List[GradeResponse])
async def list_submitted_grades(
    semester: Optional[str] = Query(None),
    academic_year: Optional[str] = Query(None, alias="academicYear"),
    current_user: User = Depends(get_current_faculty),
    service: GradeService = Depends(get_grade_service)
):
    """Grades recorded by the caller"""
    return await service.list_submitted_grades(current_user.id, semester, academic_year)
