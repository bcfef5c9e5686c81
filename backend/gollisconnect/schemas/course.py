from pydantic import Field, field_validator
from typing import Optional, List
from datetime import datetime

from gollisconnect.models.course import MIN_CREDIT_HOURS, MAX_CREDIT_HOURS
from gollisconnect.schemas.base import CamelModel


class UserSummary(CamelModel):
    id: str
    first_name: str
    last_name: str


class CourseCreate(CamelModel):
    name: str = Field(..., min_length=1)
    code: str = Field(..., min_length=1, max_length=20)
    description: Optional[str] = None
    credit_hours: int = Field(..., ge=MIN_CREDIT_HOURS, le=MAX_CREDIT_HOURS)
    department: str = Field(..., min_length=1)
    instructor_id: Optional[str] = Field(None, alias="instructor")
    prerequisites: List[str] = Field(default_factory=list)

    @field_validator("name", "code", "department")
    @classmethod
    def strip_required(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value


class CourseUpdate(CourseCreate):
    is_active: Optional[bool] = None


class CourseResponse(CamelModel):
    id: str
    code: str
    name: str
    description: Optional[str] = None
    credit_hours: int
    department: str
    instructor: Optional[UserSummary] = None
    prerequisites: List[str] = Field(default_factory=list)
    is_active: bool
    created_at: datetime
    updated_at: Optional[datetime] = None

    @field_validator("prerequisites", mode="before")
    @classmethod
    def none_as_empty(cls, value):
        return value or []


class CourseMutationResponse(CamelModel):
    message: str
    course: CourseResponse
