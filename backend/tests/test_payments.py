"""
Tuition payment tests
"""
import asyncio
import re
from datetime import datetime, timedelta
from decimal import Decimal

import pytest
from httpx import AsyncClient

from gollisconnect.core.exceptions import PaymentAlreadyProcessedError
from gollisconnect.models.payment import Payment, PaymentMethod, PaymentStatus
from gollisconnect.models.user import User, UserRole
from gollisconnect.modules.payments.gateways import GatewayRegistry, PaymentGateway
from gollisconnect.services.payment_service import PaymentService


TRANSACTION_ID = re.compile(r"^\d{13}-[0-9a-z]{9}$")


async def initiate(client: AsyncClient, headers: dict, payload: dict) -> dict:
    response = await client.post("/api/v1/payments/initiate", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


class TestInitiatePayment:
    """POST /payments/initiate"""

    async def test_initiate_zaad(self, client: AsyncClient, student_headers, payment_payload, student: User, refetch):
        data = await initiate(client, student_headers, payment_payload)

        assert data["message"] == "Payment initiated successfully"
        assert TRANSACTION_ID.match(data["transactionId"])
        assert data["paymentUrl"] == f"https://telesom-zaad.com/pay/{data['transactionId']}"

        payment = await refetch(Payment, data["paymentId"])
        assert payment.status == PaymentStatus.PENDING
        assert payment.student_id == student.id
        assert payment.amount == Decimal("450.00")
        assert payment.payment_date is None

    async def test_initiate_dahabshiil(self, client: AsyncClient, student_headers, payment_payload):
        payment_payload["paymentMethod"] = "dahabshiil"

        data = await initiate(client, student_headers, payment_payload)

        assert data["paymentUrl"].startswith("https://dahabshiil.com/pay/")

    async def test_transaction_ids_are_unique(self, client: AsyncClient, student_headers, payment_payload):
        ids = {(await initiate(client, student_headers, payment_payload))["transactionId"] for _ in range(5)}

        assert len(ids) == 5

    @pytest.mark.parametrize("amount", [0, -25.5])
    async def test_amount_must_be_positive(self, client: AsyncClient, student_headers, payment_payload, amount):
        payment_payload["amount"] = amount

        response = await client.post("/api/v1/payments/initiate", json=payment_payload, headers=student_headers)

        assert response.status_code == 400
        assert response.json()["error"]["details"]["field"] == "amount"

    async def test_unknown_method(self, client: AsyncClient, student_headers, payment_payload):
        payment_payload["paymentMethod"] = "evc_plus"

        response = await client.post("/api/v1/payments/initiate", json=payment_payload, headers=student_headers)

        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid payment method"

    async def test_only_students_pay(self, client: AsyncClient, faculty_headers, payment_payload):
        response = await client.post("/api/v1/payments/initiate", json=payment_payload, headers=faculty_headers)

        assert response.status_code == 403


class TestVerifyPayment:
    """POST /payments/verify/{transaction_id}"""

    async def test_verify_completes_payment(
        self, client: AsyncClient, student_headers, payment_payload, student: User, notifier
    ):
        tid = (await initiate(client, student_headers, payment_payload))["transactionId"]

        response = await client.post(f"/api/v1/payments/verify/{tid}", headers=student_headers)

        assert response.status_code == 200
        payment = response.json()["payment"]
        assert payment["status"] == "completed"
        assert payment["paymentDate"] is not None
        assert payment["amount"] == 450.0
        assert notifier.calls == [("payment_completed", (student.email, tid))]

    async def test_rejected_payment_fails(
        self, client: AsyncClient, student_headers, payment_payload, scripted_gateway, notifier, refetch
    ):
        data = await initiate(client, student_headers, payment_payload)
        scripted_gateway.outcome = False

        response = await client.post(f"/api/v1/payments/verify/{data['transactionId']}", headers=student_headers)

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "PAYMENT_VERIFICATION_FAILED"
        payment = await refetch(Payment, data["paymentId"])
        assert payment.status == PaymentStatus.FAILED
        assert payment.payment_date is None
        assert notifier.calls == []

    async def test_gateway_error_fails_payment(
        self, client: AsyncClient, student_headers, payment_payload, scripted_gateway, gateway_failure, refetch
    ):
        data = await initiate(client, student_headers, payment_payload)
        scripted_gateway.outcome = gateway_failure

        response = await client.post(f"/api/v1/payments/verify/{data['transactionId']}", headers=student_headers)

        assert response.status_code == 400
        assert scripted_gateway.verified == [data["transactionId"]]
        assert (await refetch(Payment, data["paymentId"])).status == PaymentStatus.FAILED

    @pytest.mark.parametrize("first_outcome, terminal_status", [(True, "completed"), (False, "failed")])
    async def test_terminal_payments_are_not_reverified(
        self,
        client: AsyncClient,
        student_headers,
        payment_payload,
        scripted_gateway,
        notifier,
        first_outcome,
        terminal_status
    ):
        tid = (await initiate(client, student_headers, payment_payload))["transactionId"]
        scripted_gateway.outcome = first_outcome
        await client.post(f"/api/v1/payments/verify/{tid}", headers=student_headers)
        calls_before = list(notifier.calls)

        scripted_gateway.outcome = True
        response = await client.post(f"/api/v1/payments/verify/{tid}", headers=student_headers)

        assert response.status_code == 409
        assert response.json()["error"]["details"]["status"] == terminal_status
        assert scripted_gateway.verified == [tid]
        assert notifier.calls == calls_before

    async def test_unknown_transaction(self, client: AsyncClient, student_headers):
        response = await client.post("/api/v1/payments/verify/0000000000000-missing00", headers=student_headers)

        assert response.status_code == 404
        assert response.json()["detail"] == "Payment not found"

    async def test_other_student_cannot_verify(
        self, client: AsyncClient, student_headers, payment_payload, make_user, headers_for, refetch
    ):
        data = await initiate(client, student_headers, payment_payload)
        intruder = await make_user(UserRole.STUDENT)

        response = await client.post(
            f"/api/v1/payments/verify/{data['transactionId']}",
            headers=headers_for(intruder)
        )

        assert response.status_code == 403
        assert (await refetch(Payment, data["paymentId"])).status == PaymentStatus.PENDING

    async def test_admin_can_verify(self, client: AsyncClient, student_headers, admin_headers, payment_payload):
        tid = (await initiate(client, student_headers, payment_payload))["transactionId"]

        response = await client.post(f"/api/v1/payments/verify/{tid}", headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["payment"]["status"] == "completed"

    async def test_verify_requires_auth(self, client: AsyncClient, student_headers, payment_payload):
        tid = (await initiate(client, student_headers, payment_payload))["transactionId"]

        response = await client.post(f"/api/v1/payments/verify/{tid}")

        assert response.status_code == 401

    async def test_unexpected_gateway_exception_fails_payment(
        self, client: AsyncClient, student_headers, payment_payload, scripted_gateway, notifier, refetch
    ):
        data = await initiate(client, student_headers, payment_payload)
        scripted_gateway.outcome = KeyError("status")

        response = await client.post(f"/api/v1/payments/verify/{data['transactionId']}", headers=student_headers)

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "PAYMENT_VERIFICATION_FAILED"
        assert (await refetch(Payment, data["paymentId"])).status == PaymentStatus.FAILED
        assert notifier.calls == []


class GatedGateway(PaymentGateway):
    """Holds every caller until ``parties`` verifications are in flight"""

    method = PaymentMethod.TELESOM_ZAAD

    def __init__(self, parties: int = 2):
        super().__init__("https://gateway.test/pay")
        self.parties = parties
        self.arrived = 0
        self.release = asyncio.Event()

    async def verify(self, payment) -> bool:
        self.arrived += 1
        if self.arrived >= self.parties:
            self.release.set()
        await self.release.wait()
        return True


class TestConcurrentVerification:
    """Only one caller may move a payment out of pending"""

    @pytest.fixture
    async def pending_payment(self, db_session, student: User) -> Payment:
        payment = Payment(
            student_id=student.id,
            amount=Decimal("450.00"),
            payment_method=PaymentMethod.TELESOM_ZAAD,
            transaction_id="1718000000000-racecheck",
            status=PaymentStatus.PENDING,
            semester="Fall",
            academic_year="2024-2025",
        )
        db_session.add(payment)
        await db_session.commit()
        return payment

    async def test_two_verifications_settle_once(self, database, notifier, pending_payment: Payment, refetch):
        gateway = GatedGateway(parties=2)
        registry = GatewayRegistry()
        registry.register(gateway)

        async def verify_in_own_session():
            async with database.session_factory() as session:
                service = PaymentService(session, gateways=registry, notifier=notifier)
                return await service.verify_payment(pending_payment.transaction_id)

        results = await asyncio.wait_for(
            asyncio.gather(verify_in_own_session(), verify_in_own_session(), return_exceptions=True),
            timeout=10
        )

        settled = [r for r in results if isinstance(r, Payment)]
        refused = [r for r in results if isinstance(r, PaymentAlreadyProcessedError)]
        assert len(settled) == 1
        assert len(refused) == 1
        assert refused[0].details["status"] == "completed"
        assert notifier.kinds() == ["payment_completed"]
        assert (await refetch(Payment, pending_payment.id)).status == PaymentStatus.COMPLETED

    async def test_late_rejection_keeps_completed_payment(
        self, client: AsyncClient, student_headers, database, scripted_gateway, notifier, pending_payment: Payment, refetch
    ):
        """A rejection that arrives after another caller completed the payment changes nothing"""
        scripted_gateway.outcome = False
        original_verify = scripted_gateway.verify

        async def completed_elsewhere_then_rejected(payment):
            async with database.session_factory() as session:
                row = await session.get(Payment, payment.id)
                row.status = PaymentStatus.COMPLETED
                row.payment_date = datetime.utcnow()
                await session.commit()
            return await original_verify(payment)

        scripted_gateway.verify = completed_elsewhere_then_rejected

        response = await client.post(
            f"/api/v1/payments/verify/{pending_payment.transaction_id}",
            headers=student_headers
        )

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "PAYMENT_ALREADY_PROCESSED"
        stored = await refetch(Payment, pending_payment.id)
        assert stored.status == PaymentStatus.COMPLETED
        assert stored.payment_date is not None
        assert notifier.calls == []


class TestPaymentHistory:
    """GET /payments/history"""

    async def test_history_order(self, client: AsyncClient, student_headers, student: User, db_session):
        now = datetime.utcnow()
        rows = [
            ("older", PaymentStatus.COMPLETED, now - timedelta(days=30), now - timedelta(days=31)),
            ("newer", PaymentStatus.COMPLETED, now - timedelta(days=1), now - timedelta(days=2)),
            ("pending-old", PaymentStatus.PENDING, None, now - timedelta(days=10)),
            ("pending-new", PaymentStatus.PENDING, None, now - timedelta(hours=1)),
        ]
        for tid, status, paid_at, created_at in rows:
            db_session.add(Payment(
                student_id=student.id,
                amount=Decimal("100.00"),
                payment_method=PaymentMethod.DAHABSHIIL,
                transaction_id=tid,
                status=status,
                semester="Fall",
                academic_year="2024-2025",
                payment_date=paid_at,
                created_at=created_at,
            ))
        await db_session.commit()

        response = await client.get("/api/v1/payments/history", headers=student_headers)

        assert response.status_code == 200
        assert [p["transactionId"] for p in response.json()] == ["newer", "older", "pending-new", "pending-old"]

    async def test_history_is_per_user(
        self, client: AsyncClient, student_headers, payment_payload, make_user, headers_for
    ):
        await initiate(client, student_headers, payment_payload)
        other = await make_user(UserRole.STUDENT)

        response = await client.get("/api/v1/payments/history", headers=headers_for(other))

        assert response.json() == []
