from pydantic import EmailStr, Field, field_validator, model_validator
from typing import Optional, Literal
from datetime import datetime

from gollisconnect.models.user import UserRole
from gollisconnect.schemas.base import CamelModel


class UserRegister(CamelModel):
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(..., min_length=6)
    role: Literal["student", "faculty", "admin"]
    department: str = Field(..., min_length=1)
    student_id: Optional[str] = None

    @field_validator("first_name", "last_name", "department")
    @classmethod
    def strip_required(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, value: str) -> str:
        return value.lower()

    @model_validator(mode='after')
    def validate_student_id(self):
        """Students must register with their student ID; others never carry one"""
        if self.role == "student":
            if not self.student_id or not self.student_id.strip():
                raise ValueError("Student ID is required for students")
            self.student_id = self.student_id.strip()
        else:
            self.student_id = None
        return self


class UserLogin(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=1)

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, value: str) -> str:
        return value.lower()


class UserResponse(CamelModel):
    id: str
    email: str
    first_name: str
    last_name: str
    role: UserRole
    department: str
    student_id: Optional[str] = None
    phone_number: Optional[str] = None
    is_phone_verified: bool = False
    is_active: bool = True
    created_at: datetime
    last_login: Optional[datetime] = None


class AuthResponse(CamelModel):
    message: str
    token: str
    token_type: str = "bearer"
    user: UserResponse


class ForgotPasswordRequest(CamelModel):
    email: EmailStr

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, value: str) -> str:
        return value.lower()


class ResetPasswordRequest(CamelModel):
    password: str = Field(..., min_length=6)
