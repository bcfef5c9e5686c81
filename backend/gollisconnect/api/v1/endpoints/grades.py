from fastapi import APIRouter, Depends, Query, status
from typing import List, Optional

from gollisconnect.core.exceptions import ValidationError
from gollisconnect.models.user import User, UserRole
from gollisconnect.schemas.base import MessageResponse
from gollisconnect.schemas.grade import (
    GradeCreate,
    GradeUpdate,
    GradeResponse,
    GradeMutationResponse,
    StudentGradesResponse,
)
from gollisconnect.modules.auth.dependencies import (
    get_current_user,
    get_current_faculty,
    get_grade_service,
)
from gollisconnect.services.grade_service import GradeService


router = APIRouter()


@router.post("", response_model=GradeMutationResponse, status_code=status.HTTP_201_CREATED)
async def record_grade(
    grade_data: GradeCreate,
    current_user: User = Depends(get_current_faculty),
    service: GradeService = Depends(get_grade_service)
):
    """Record a grade for a student (faculty/admin)"""
    grade = await service.record_grade(grade_data, submitted_by=current_user)
    return GradeMutationResponse(
        message="Grade added successfully",
        grade=GradeResponse.model_validate(grade)
    )


@router.put("/{grade_id}", response_model=GradeMutationResponse)
async def update_grade(
    grade_id: str,
    grade_data: GradeUpdate,
    current_user: User = Depends(get_current_faculty),
    service: GradeService = Depends(get_grade_service)
):
    grade = await service.update_grade(grade_id, grade_data, updated_by=current_user)
    return GradeMutationResponse(
        message="Grade updated successfully",
        grade=GradeResponse.model_validate(grade)
    )


@router.delete("/{grade_id}", response_model=MessageResponse)
async def delete_grade(
    grade_id: str,
    current_user: User = Depends(get_current_faculty),
    service: GradeService = Depends(get_grade_service)
):
    await service.delete_grade(grade_id)
    return MessageResponse(message="Grade deleted successfully")


@router.get("/student", response_model=StudentGradesResponse)
async def get_student_grades(
    student_id: Optional[str] = Query(None, alias="studentId"),
    semester: Optional[str] = Query(None),
    academic_year: Optional[str] = Query(None, alias="academicYear"),
    current_user: User = Depends(get_current_user),
    service: GradeService = Depends(get_grade_service)
):
    """
    Grades with GPA, newest first.

    Students always get their own record. Faculty and admins must name the
    student by registration number.
    """
    if current_user.role == UserRole.STUDENT:
        student_pk = current_user.id
    else:
        if not student_id:
            raise ValidationError("Student ID is required", field="studentId")
        student = await service.get_student_by_registration(student_id)
        student_pk = student.id

    grades = await service.list_recent_grades(student_pk, semester, academic_year)
    gpa = await service.calculate_gpa(student_pk)
    return StudentGradesResponse(
        grades=[GradeResponse.model_validate(g) for g in grades],
        gpa=gpa
    )


@router.get("/course/{course_id}", response_model=List[GradeResponse])
async def get_course_grades(
    course_id: str,
    semester: Optional[str] = Query(None),
    academic_year: Optional[str] = Query(None, alias="academicYear"),
    current_user: User = Depends(get_current_faculty),
    service: GradeService = Depends(get_grade_service)
):
    """Grades for one course, ordered by student surname"""
    return await service.list_course_grades(course_id, semester, academic_year)
