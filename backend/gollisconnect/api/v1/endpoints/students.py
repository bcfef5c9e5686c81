from fastapi import APIRouter, Depends, Query
from typing import List, Optional

from gollisconnect.models.user import User
from gollisconnect.schemas.auth import UserResponse
from gollisconnect.schemas.grade import GradeResponse, StudentGradesResponse
from gollisconnect.schemas.payment import PaymentResponse
from gollisconnect.schemas.user import ProfileUpdate, ProfileUpdateResponse
from gollisconnect.modules.auth.dependencies import (
    get_current_student,
    get_grade_service,
    get_payment_service,
    get_user_service,
)
from gollisconnect.services.grade_service import GradeService
from gollisconnect.services.payment_service import PaymentService
from gollisconnect.services.user_service import UserService


router = APIRouter()


@router.get("/profile", response_model=UserResponse)
async def get_profile(current_user: User = Depends(get_current_student)):
    return current_user


@router.put("/profile", response_model=ProfileUpdateResponse)
async def update_profile(
    profile_data: ProfileUpdate,
    current_user: User = Depends(get_current_student),
    service: UserService = Depends(get_user_service)
):
    user = await service.update_profile(current_user, profile_data)
    return ProfileUpdateResponse(
        message="Profile updated successfully",
        user=UserResponse.model_validate(user)
    )


@router.get("/grades", response_model=StudentGradesResponse)
async def get_grade_report(
    semester: Optional[str] = Query(None),
    academic_year: Optional[str] = Query(None, alias="academicYear"),
    current_user: User = Depends(get_current_student),
    service: GradeService = Depends(get_grade_service)
):
    """Grade report grouped by term, with cumulative GPA"""
    grades, gpa = await service.get_grade_report(current_user.id, semester, academic_year)
    return StudentGradesResponse(
        grades=[GradeResponse.model_validate(g) for g in grades],
        gpa=gpa
    )


@router.get("/payments", response_model=List[PaymentResponse])
async def get_payments(
    current_user: User = Depends(get_current_student),
    service: PaymentService = Depends(get_payment_service)
):
    return await service.list_payments(current_user.id)
