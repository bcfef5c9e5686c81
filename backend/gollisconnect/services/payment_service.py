"""
Payment Service
Tuition payment lifecycle:

    pending --approved--> completed
    pending --rejected--> failed

``verify_payment`` is the only way out of pending; completed and failed are
terminal and cannot be verified again.
"""

import secrets
import string
import time
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import List, Optional, Tuple

from sqlalchemy import select, case, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from gollisconnect.core.exceptions import (
    ConflictError,
    PaymentAlreadyProcessedError,
    PaymentNotFoundError,
    PaymentVerificationFailedError,
    UpstreamServiceError,
    ValidationError,
)
from gollisconnect.core.logging_config import logger
from gollisconnect.models.payment import Payment, PaymentMethod, PaymentStatus
from gollisconnect.models.user import User
from gollisconnect.modules.payments.gateways import GatewayRegistry, gateway_registry
from gollisconnect.schemas.payment import PaymentInitiateRequest
from gollisconnect.services.notification_service import NotificationService, notification_service


BASE36_ALPHABET = string.digits + string.ascii_lowercase
TRANSACTION_SUFFIX_LENGTH = 9


def generate_transaction_id() -> str:
    """Millisecond timestamp plus a random base36 suffix, e.g. 1718000000000-k3j9x0a2b"""
    suffix = "".join(secrets.choice(BASE36_ALPHABET) for _ in range(TRANSACTION_SUFFIX_LENGTH))
    return f"{int(time.time() * 1000)}-{suffix}"


class PaymentService:
    """Service for initiating and verifying tuition payments"""

    def __init__(
        self,
        db: AsyncSession,
        gateways: Optional[GatewayRegistry] = None,
        notifier: Optional[NotificationService] = None
    ):
        self.db = db
        self.gateways = gateways or gateway_registry
        self.notifier = notifier or notification_service

    @staticmethod
    def _parse_amount(amount: float) -> Decimal:
        try:
            value = Decimal(str(amount)).quantize(Decimal("0.01"))
        except (InvalidOperation, ValueError):
            raise ValidationError("Amount must be a number", field="amount")
        if not value.is_finite() or value <= 0:
            raise ValidationError("Amount must be greater than 0", field="amount")
        return value

    @staticmethod
    def _parse_method(payment_method: str) -> PaymentMethod:
        try:
            return PaymentMethod(payment_method)
        except ValueError:
            raise ValidationError("Invalid payment method", field="paymentMethod")

    async def initiate_payment(
        self,
        student: User,
        data: PaymentInitiateRequest
    ) -> Tuple[Payment, str]:
        """Create a pending payment; returns it with the provider payment URL"""
        amount = self._parse_amount(data.amount)
        method = self._parse_method(data.payment_method)
        gateway = self.gateways.get(method)

        payment = Payment(
            student_id=student.id,
            amount=amount,
            payment_method=method,
            transaction_id=generate_transaction_id(),
            status=PaymentStatus.PENDING,
            semester=data.semester,
            academic_year=data.academic_year,
            notes=data.notes,
        )
        self.db.add(payment)
        try:
            await self.db.flush()
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError("Transaction ID collision, please retry", code="TRANSACTION_ID_CONFLICT")

        payment_url = gateway.build_payment_url(payment.transaction_id)
        logger.info(
            f"[Payment] Initiated {payment.transaction_id} for {student.email}: "
            f"{amount} via {method.value}"
        )
        return payment, payment_url

    async def get_payment(self, transaction_id: str) -> Payment:
        result = await self.db.execute(
            select(Payment)
            .options(selectinload(Payment.student))
            .where(Payment.transaction_id == transaction_id)
            .execution_options(populate_existing=True)
        )
        payment = result.scalar_one_or_none()
        if not payment:
            raise PaymentNotFoundError(transaction_id)
        return payment

    async def _settle(self, payment: Payment, approved: bool) -> None:
        """
        Move ``payment`` out of pending in one conditional UPDATE.

        Whoever changes the row wins; a caller whose UPDATE matches nothing
        lost to a concurrent verification and gets PaymentAlreadyProcessedError.
        """
        values = {"status": PaymentStatus.COMPLETED if approved else PaymentStatus.FAILED}
        if approved:
            values["payment_date"] = datetime.utcnow()

        result = await self.db.execute(
            update(Payment)
            .where(Payment.id == payment.id, Payment.status == PaymentStatus.PENDING)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await self.db.rollback()
            current = await self.get_payment(payment.transaction_id)
            logger.warning(
                f"[Payment] {payment.transaction_id} settled concurrently: already {current.status.value}"
            )
            raise PaymentAlreadyProcessedError(payment.transaction_id, current.status.value)

        await self.db.commit()

    async def verify_payment(self, transaction_id: str) -> Payment:
        """
        Settle a pending payment through its gateway.

        Raises PaymentAlreadyProcessedError for completed or failed payments,
        including one settled by a concurrent call while the gateway was being
        asked, and PaymentVerificationFailedError after marking a rejected
        payment failed. Notifications go out only from the call that moved the
        payment from pending to completed.
        """
        payment = await self.get_payment(transaction_id)

        if payment.status.is_terminal:
            logger.warning(f"[Payment] Re-verification of {transaction_id} refused: already {payment.status.value}")
            raise PaymentAlreadyProcessedError(transaction_id, payment.status.value)

        gateway = self.gateways.get(payment.payment_method)
        try:
            approved = await gateway.verify(payment)
        except UpstreamServiceError as e:
            logger.error(f"[Payment] Gateway error verifying {transaction_id}: {e.message}")
            approved = False
        except Exception as e:
            logger.log_error_with_context(e, context=f"{gateway.name} verify {transaction_id}")
            approved = False

        await self._settle(payment, bool(approved))

        if not approved:
            logger.warning(f"[Payment] Verification failed for {transaction_id}")
            raise PaymentVerificationFailedError(transaction_id)

        logger.info(f"[Payment] Completed {transaction_id}")
        payment = await self.get_payment(transaction_id)
        await self.notifier.notify_payment_completed(payment.student, payment)
        return payment

    async def list_payments(self, student_pk: str) -> List[Payment]:
        """Newest payment date first; pending payments (no date) after, newest created first"""
        result = await self.db.execute(
            select(Payment)
            .where(Payment.student_id == student_pk)
            .order_by(
                case((Payment.payment_date.is_(None), 1), else_=0),
                Payment.payment_date.desc(),
                Payment.created_at.desc(),
            )
        )
        return list(result.scalars().all())
