"""
Phone verification tests
"""
from httpx import AsyncClient

from gollisconnect.models.user import User, UserRole


PHONE = "+252634567890"


async def test_send_code_sets_missing_phone(client: AsyncClient, student: User, student_headers, sms):
    response = await client.post("/api/v1/verification/send-code", json={"phoneNumber": PHONE}, headers=student_headers)

    assert response.status_code == 200
    assert response.json()["verificationSid"].startswith("VE")
    assert sms.sent_to == [PHONE]

    status = await client.get("/api/v1/verification/status", headers=student_headers)
    assert status.json() == {"phoneNumber": PHONE, "isVerified": False}


async def test_send_code_keeps_existing_phone(client: AsyncClient, make_user, headers_for):
    user = await make_user(UserRole.FACULTY, phone_number="+252634000001")

    await client.post("/api/v1/verification/send-code", json={"phoneNumber": PHONE}, headers=headers_for(user))

    status = await client.get("/api/v1/verification/status", headers=headers_for(user))
    assert status.json()["phoneNumber"] == "+252634000001"


async def test_verify_code(client: AsyncClient, student_headers, sms):
    await client.post("/api/v1/verification/send-code", json={"phoneNumber": PHONE}, headers=student_headers)

    response = await client.post(
        "/api/v1/verification/verify-code",
        json={"phoneNumber": PHONE, "code": sms.VALID_CODE},
        headers=student_headers
    )

    assert response.status_code == 200
    assert response.json()["status"] == "approved"

    status = await client.get("/api/v1/verification/status", headers=student_headers)
    assert status.json() == {"phoneNumber": PHONE, "isVerified": True}


async def test_verify_wrong_code(client: AsyncClient, student_headers):
    response = await client.post(
        "/api/v1/verification/verify-code",
        json={"phoneNumber": PHONE, "code": "000000"},
        headers=student_headers
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid verification code"

    status = await client.get("/api/v1/verification/status", headers=student_headers)
    assert status.json()["isVerified"] is False


async def test_verification_requires_auth(client: AsyncClient):
    response = await client.get("/api/v1/verification/status")

    assert response.status_code == 401
