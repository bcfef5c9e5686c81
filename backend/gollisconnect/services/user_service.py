"""
User Service
Profiles, student directory lookups and phone number verification.
"""

from typing import List, Optional, Dict, Any
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from gollisconnect.core.exceptions import EmailInUseError, StudentNotFoundError, ValidationError
from gollisconnect.core.logging_config import logger
from gollisconnect.models.user import User, UserRole
from gollisconnect.schemas.user import ProfileUpdate
from gollisconnect.services.sms_service import SMSService, sms_service


class UserService:
    """Service for user profile operations"""

    def __init__(self, db: AsyncSession, sms: Optional[SMSService] = None):
        self.db = db
        self.sms = sms or sms_service

    # =====================================================
    # PROFILE MANAGEMENT
    # =====================================================

    async def update_profile(self, user: User, data: ProfileUpdate) -> User:
        """Apply the provided fields; changing the phone number clears its verification"""
        if data.email and data.email != user.email:
            result = await self.db.execute(select(User.id).where(User.email == data.email))
            if result.scalar_one_or_none():
                raise EmailInUseError(data.email)
            user.email = data.email

        if data.first_name:
            user.first_name = data.first_name
        if data.last_name:
            user.last_name = data.last_name
        if data.phone_number and data.phone_number != user.phone_number:
            user.phone_number = data.phone_number
            user.is_phone_verified = False

        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise EmailInUseError(data.email or user.email)

        await self.db.refresh(user)
        logger.info(f"[Profile] Updated profile for {user.email}")
        return user

    # =====================================================
    # STUDENT DIRECTORY
    # =====================================================

    async def list_students(self) -> List[User]:
        result = await self.db.execute(
            select(User)
            .where(User.role == UserRole.STUDENT)
            .order_by(User.last_name, User.first_name)
        )
        return list(result.scalars().all())

    async def get_student(self, user_id: str) -> User:
        """Look up a student by user id"""
        result = await self.db.execute(
            select(User).where(User.id == user_id, User.role == UserRole.STUDENT)
        )
        student = result.scalar_one_or_none()
        if not student:
            raise StudentNotFoundError(user_id)
        return student

    # =====================================================
    # PHONE VERIFICATION
    # =====================================================

    async def send_verification_code(self, user: User, phone_number: str) -> Dict[str, Any]:
        result = await self.sms.send_verification_code(phone_number)

        if not user.phone_number:
            user.phone_number = phone_number
            await self.db.commit()

        return result

    async def verify_phone_code(self, user: User, phone_number: str, code: str) -> str:
        """Returns the provider status; raises ValidationError unless approved"""
        result = await self.sms.check_verification_code(phone_number, code)
        status = result.get("status", "unknown")

        if status != "approved":
            logger.warning(f"[Verification] Code rejected for {user.email}: {status}")
            raise ValidationError("Invalid verification code", field="code")

        user.phone_number = phone_number
        user.is_phone_verified = True
        await self.db.commit()

        logger.info(f"[Verification] Phone verified for {user.email}")
        return status
