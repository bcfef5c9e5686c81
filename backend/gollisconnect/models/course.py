from sqlalchemy import Column, String, Boolean, DateTime, Integer, Text, JSON, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from datetime import datetime

from gollisconnect.core.database import Base
from gollisconnect.core.types import GUID, generate_uuid


MIN_CREDIT_HOURS = 1
MAX_CREDIT_HOURS = 6


class Course(Base):
    """Catalog course. Never hard-deleted: deactivation clears is_active."""
    __tablename__ = "courses"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    code = Column(String(20), unique=True, index=True, nullable=False)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    credit_hours = Column(Integer, nullable=False)
    department = Column(String(255), index=True, nullable=False)
    instructor_id = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    prerequisites = Column(JSON, default=list)  # list of course codes
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    instructor = relationship("User", foreign_keys=[instructor_id])

    __table_args__ = (
        CheckConstraint(
            f"credit_hours BETWEEN {MIN_CREDIT_HOURS} AND {MAX_CREDIT_HOURS}",
            name="ck_courses_credit_hours"
        ),
    )

    def __repr__(self):
        return f"<Course {self.code}>"
