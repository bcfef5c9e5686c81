"""
Notification facade used by the domain services.

Everything here is best-effort: methods are called after the primary
transaction has committed, retry a failed delivery up to
NOTIFICATION_MAX_ATTEMPTS times, log the outcome and never raise.
"""

import asyncio
from typing import Awaitable, Callable, Optional

from gollisconnect.core.config import settings
from gollisconnect.core.logging_config import logger
from gollisconnect.models.course import Course
from gollisconnect.models.grade import Grade
from gollisconnect.models.payment import Payment
from gollisconnect.models.user import User
from gollisconnect.services.email_service import EmailService, email_service
from gollisconnect.services.sms_service import SMSService, sms_service


class NotificationService:
    """Sends domain notifications over email and WhatsApp"""

    def __init__(
        self,
        email: Optional[EmailService] = None,
        sms: Optional[SMSService] = None,
        max_attempts: Optional[int] = None,
        retry_delay: Optional[float] = None,
    ):
        self.email = email or email_service
        self.sms = sms or sms_service
        self.max_attempts = max(1, max_attempts or settings.NOTIFICATION_MAX_ATTEMPTS)
        self.retry_delay = settings.NOTIFICATION_RETRY_DELAY if retry_delay is None else retry_delay

    async def _deliver(
        self,
        channel: str,
        kind: str,
        recipient: str,
        send: Callable[[], Awaitable[object]],
    ) -> bool:
        """
        Run ``send`` until it succeeds or attempts run out.

        ``send`` succeeds when it returns a truthy value without raising.
        """
        for attempt in range(1, self.max_attempts + 1):
            try:
                if await send():
                    logger.log_notification(channel, kind, recipient, True, attempt=attempt)
                    return True
            except Exception as e:
                logger.warning(f"[Notify] {channel}/{kind} attempt {attempt} to {recipient} failed: {e}")

            if attempt < self.max_attempts and self.retry_delay:
                await asyncio.sleep(self.retry_delay)

        logger.log_notification(channel, kind, recipient, False, attempts=self.max_attempts)
        return False

    async def _send_email(self, kind: str, recipient: str, send: Callable[[], Awaitable[bool]]) -> bool:
        if not self.email.is_configured:
            logger.log_notification("email", kind, recipient, False, reason="not_configured")
            return False
        return await self._deliver("email", kind, recipient, send)

    async def notify_welcome(self, user: User) -> bool:
        return await self._send_email(
            "welcome",
            user.email,
            lambda: self.email.send_welcome_email(user.email, user.first_name),
        )

    async def notify_grade_posted(self, student: User, course: Course, grade: Grade) -> bool:
        letter = grade.grade.value if hasattr(grade.grade, "value") else str(grade.grade)
        return await self._send_email(
            "grade_posted",
            student.email,
            lambda: self.email.send_grade_posted_email(
                student.email,
                student.first_name,
                course.name,
                course.code,
                letter,
                grade.semester,
                grade.academic_year,
            ),
        )

    async def notify_payment_completed(self, student: User, payment: Payment) -> bool:
        """Receipt email, plus a WhatsApp confirmation for verified phones"""
        amount = float(payment.amount)
        receipt_sent = await self._send_email(
            "payment_receipt",
            student.email,
            lambda: self.email.send_payment_receipt_email(
                student.email,
                student.first_name,
                amount,
                payment.transaction_id,
                payment.payment_method.value,
                payment.semester,
                payment.academic_year,
                payment.payment_date,
            ),
        )

        if not (student.phone_number and student.is_phone_verified):
            return receipt_sent

        body = (
            f"Your payment of ${amount:,.2f} has been received successfully. "
            f"Transaction ID: {payment.transaction_id}"
        )
        whatsapp_sent = await self._deliver(
            "whatsapp",
            "payment_confirmation",
            student.phone_number,
            lambda: self.sms.send_whatsapp_message(student.phone_number, body),
        )
        return receipt_sent and whatsapp_sent

    async def notify_password_reset(self, user: User, reset_token: str) -> bool:
        return await self._send_email(
            "password_reset",
            user.email,
            lambda: self.email.send_password_reset_email(user.email, user.first_name, reset_token),
        )


# Singleton instance
notification_service = NotificationService()
