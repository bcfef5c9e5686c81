from fastapi import APIRouter
from gollisconnect.api.v1.endpoints import auth, courses, grades, payments, students, faculty, verification

api_router = APIRouter()

api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
api_router.include_router(courses.router, prefix="/courses", tags=["Courses"])
api_router.include_router(grades.router, prefix="/grades", tags=["Grades"])
api_router.include_router(payments.router, prefix="/payments", tags=["Payments"])
api_router.include_router(students.router, prefix="/students", tags=["Students"])
api_router.include_router(faculty.router, prefix="/faculty", tags=["Faculty"])
api_router.include_router(verification.router, prefix="/verification", tags=["Phone Verification"])
