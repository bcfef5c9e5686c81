from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from typing import Optional
import uuid

from gollisconnect.core.database import get_db
from gollisconnect.core.exceptions import AuthenticationError, AuthorizationError, InvalidTokenError
from gollisconnect.core.logging_config import set_user_id
from gollisconnect.core.security import decode_token
from gollisconnect.models.user import User, UserRole
from gollisconnect.modules.payments.gateways import GatewayRegistry, gateway_registry
from gollisconnect.services.course_service import CourseService
from gollisconnect.services.grade_service import GradeService
from gollisconnect.services.notification_service import NotificationService, notification_service
from gollisconnect.services.payment_service import PaymentService
from gollisconnect.services.sms_service import SMSService, sms_service
from gollisconnect.services.user_service import UserService

# Missing credentials are reported as 401 by get_current_user
security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> User:
    """Get current authenticated user"""

    if credentials is None:
        raise AuthenticationError("No token, authorization denied")

    payload = decode_token(credentials.credentials)

    if payload.get("type") != "access":
        raise InvalidTokenError("Invalid token type")

    user_id = payload.get("sub")
    if not user_id:
        raise InvalidTokenError("Invalid token payload")

    # Validate user_id is a valid UUID format
    try:
        uuid.UUID(user_id)
    except ValueError:
        raise InvalidTokenError("Invalid user ID format")

    result = await db.execute(
        select(User).where(User.id == user_id)
    )
    user = result.scalar_one_or_none()

    if not user:
        raise AuthenticationError("User not found")

    if not user.is_active:
        raise AuthorizationError("User account is inactive")

    set_user_id(user.id)
    return user


def require_role(*roles: UserRole):
    """Dependency factory: the caller must hold one of ``roles``"""
    allowed = ", ".join(role.value for role in roles)

    async def checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in roles:
            raise AuthorizationError(f"Access denied. Requires role: {allowed}")
        return current_user

    return checker


get_current_student = require_role(UserRole.STUDENT)
get_current_faculty = require_role(UserRole.FACULTY, UserRole.ADMIN)
get_current_admin = require_role(UserRole.ADMIN)


# =====================================================
# Collaborators (overridable in tests)
# =====================================================

def get_notifier() -> NotificationService:
    return notification_service


def get_sms_service() -> SMSService:
    return sms_service


def get_gateway_registry() -> GatewayRegistry:
    return gateway_registry


# =====================================================
# Services
# =====================================================

def get_course_service(db: AsyncSession = Depends(get_db)) -> CourseService:
    return CourseService(db)


def get_grade_service(
    db: AsyncSession = Depends(get_db),
    notifier: NotificationService = Depends(get_notifier)
) -> GradeService:
    return GradeService(db, notifier=notifier)


def get_payment_service(
    db: AsyncSession = Depends(get_db),
    gateways: GatewayRegistry = Depends(get_gateway_registry),
    notifier: NotificationService = Depends(get_notifier)
) -> PaymentService:
    return PaymentService(db, gateways=gateways, notifier=notifier)


def get_user_service(
    db: AsyncSession = Depends(get_db),
    sms: SMSService = Depends(get_sms_service)
) -> UserService:
    return UserService(db, sms=sms)
