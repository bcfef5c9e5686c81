from fastapi import APIRouter, Depends, status, Request
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, or_
from sqlalchemy.exc import IntegrityError
from datetime import datetime, timedelta
import hashlib

from gollisconnect.core.database import get_db
from gollisconnect.core.config import settings
from gollisconnect.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    DuplicateStudentIdError,
    EmailInUseError,
    ValidationError,
)
from gollisconnect.core.security import (
    verify_password,
    get_password_hash,
    create_access_token,
    generate_reset_token,
)
from gollisconnect.core.logging_config import logger, set_user_id
from gollisconnect.core.rate_limiter import strict_rate_limit, auth_rate_limit
from gollisconnect.models.user import User, UserRole
from gollisconnect.schemas.auth import (
    UserRegister,
    UserLogin,
    UserResponse,
    AuthResponse,
    ForgotPasswordRequest,
    ResetPasswordRequest,
)
from gollisconnect.schemas.base import MessageResponse
from gollisconnect.modules.auth.dependencies import get_current_user, get_notifier
from gollisconnect.services.notification_service import NotificationService


router = APIRouter()


def _client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def _hash_reset_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _issue_token(user: User) -> str:
    return create_access_token({
        "sub": str(user.id),
        "email": user.email,
        "role": user.role.value
    })


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
@strict_rate_limit()
async def register(
    request: Request,
    user_data: UserRegister,
    db: AsyncSession = Depends(get_db),
    notifier: NotificationService = Depends(get_notifier)
):
    """Register new user (rate limited: 3/min)"""
    client_ip = _client_ip(request)

    conditions = [User.email == user_data.email]
    if user_data.student_id:
        conditions.append(User.student_id == user_data.student_id)
    result = await db.execute(select(User).where(or_(*conditions)))
    existing_user = result.scalars().first()

    if existing_user:
        email_taken = existing_user.email == user_data.email
        logger.log_auth_event(
            event="register",
            success=False,
            user_email=user_data.email,
            reason="Email already registered" if email_taken else "Student ID already registered",
            client_ip=client_ip
        )
        if email_taken:
            raise EmailInUseError(user_data.email)
        raise DuplicateStudentIdError(user_data.student_id)

    user_role = UserRole(user_data.role)
    user = User(
        email=user_data.email,
        hashed_password=get_password_hash(user_data.password),
        first_name=user_data.first_name,
        last_name=user_data.last_name,
        role=user_role,
        department=user_data.department,
        student_id=user_data.student_id,
    )

    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("User already exists", code="USER_EXISTS")
    await db.refresh(user)

    logger.log_auth_event(
        event="register",
        success=True,
        user_email=user.email,
        client_ip=client_ip,
        user_role=user_role.value
    )

    await notifier.notify_welcome(user)

    return AuthResponse(
        message="User registered successfully",
        token=_issue_token(user),
        user=UserResponse.model_validate(user)
    )


@router.post("/login", response_model=AuthResponse)
@auth_rate_limit()
async def login(
    request: Request,
    credentials: UserLogin,
    db: AsyncSession = Depends(get_db)
):
    """Login user (rate limited: 5/min)"""
    client_ip = _client_ip(request)

    result = await db.execute(
        select(User).where(User.email == credentials.email)
    )
    user = result.scalar_one_or_none()

    if not user or not verify_password(credentials.password, user.hashed_password):
        logger.log_auth_event(
            event="login",
            success=False,
            user_email=credentials.email,
            reason="Invalid credentials",
            client_ip=client_ip
        )
        raise AuthenticationError("Invalid credentials")

    if not user.is_active:
        logger.log_auth_event(
            event="login",
            success=False,
            user_email=credentials.email,
            reason="Account inactive",
            client_ip=client_ip
        )
        raise AuthorizationError("Account is inactive")

    user.last_login = datetime.utcnow()
    await db.commit()

    set_user_id(str(user.id))

    logger.log_auth_event(
        event="login",
        success=True,
        user_email=user.email,
        client_ip=client_ip,
        user_role=user.role.value
    )

    return AuthResponse(
        message="Login successful",
        token=_issue_token(user),
        user=UserResponse.model_validate(user)
    )


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(
    current_user: User = Depends(get_current_user)
):
    """Get current user info"""
    return current_user


@router.post("/forgot-password", response_model=MessageResponse)
@strict_rate_limit()
async def forgot_password(
    request: Request,
    body: ForgotPasswordRequest,
    db: AsyncSession = Depends(get_db),
    notifier: NotificationService = Depends(get_notifier)
):
    """
    Request a password reset link.

    The response is the same whether or not the email is registered.
    """
    response = MessageResponse(
        message="If an account with that email exists, you will receive password reset instructions."
    )

    result = await db.execute(select(User).where(User.email == body.email))
    user = result.scalar_one_or_none()
    if not user or not user.is_active:
        logger.log_auth_event(
            event="forgot_password",
            success=False,
            user_email=body.email,
            reason="Unknown or inactive account",
            client_ip=_client_ip(request)
        )
        return response

    reset_token = generate_reset_token()
    user.reset_token_hash = _hash_reset_token(reset_token)
    user.reset_token_expires = datetime.utcnow() + timedelta(minutes=settings.PASSWORD_RESET_EXPIRE_MINUTES)
    await db.commit()

    logger.log_auth_event(event="forgot_password", success=True, user_email=user.email)

    await notifier.notify_password_reset(user, reset_token)
    return response


@router.post("/reset-password/{token}", response_model=MessageResponse)
async def reset_password(
    token: str,
    body: ResetPasswordRequest,
    db: AsyncSession = Depends(get_db)
):
    """Set a new password using a reset token; tokens are single use"""
    result = await db.execute(
        select(User).where(
            User.reset_token_hash == _hash_reset_token(token),
            User.reset_token_expires > datetime.utcnow()
        )
    )
    user = result.scalar_one_or_none()

    if not user:
        logger.log_auth_event(event="reset_password", success=False, reason="Invalid or expired token")
        raise ValidationError("Password reset token is invalid or has expired", field="token")

    user.hashed_password = get_password_hash(body.password)
    user.reset_token_hash = None
    user.reset_token_expires = None
    await db.commit()

    logger.log_auth_event(event="reset_password", success=True, user_email=user.email)
    return MessageResponse(message="Password has been reset successfully")
