"""
GollisConnect - Test Configuration and Fixtures
"""
import os
from typing import AsyncGenerator, Awaitable, Callable, Dict, List, Optional, Tuple
import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession
from faker import Faker

# Set testing environment before the app reads its settings
os.environ['TESTING'] = 'true'
os.environ['ENVIRONMENT'] = 'testing'
os.environ['DEBUG'] = 'false'
os.environ['DATABASE_URL'] = 'sqlite+aiosqlite:///./test.db'
os.environ['JWT_SECRET_KEY'] = 'test-jwt-secret-key-for-testing'
os.environ['RATE_LIMIT_ENABLED'] = 'false'
os.environ['BCRYPT_ROUNDS'] = '4'
os.environ['SMTP_USER'] = ''
os.environ['SMTP_PASSWORD'] = ''
os.environ['TWILIO_ACCOUNT_SID'] = ''
os.environ['TWILIO_AUTH_TOKEN'] = ''

from gollisconnect.main import app
from gollisconnect.core.config import settings
from gollisconnect.core.database import Database
from gollisconnect.core.exceptions import UpstreamServiceError
from gollisconnect.core.security import get_password_hash, create_access_token
from gollisconnect.models.course import Course
from gollisconnect.models.payment import PaymentMethod
from gollisconnect.models.user import User, UserRole
from gollisconnect.modules.auth.dependencies import get_notifier, get_sms_service, get_gateway_registry
from gollisconnect.modules.payments.gateways import (
    GatewayRegistry,
    PaymentGateway,
    TelesomZaadGateway,
    DahabshiilGateway,
)

fake = Faker()

TEST_PASSWORD = 'testpassword123'


# =====================================================
# Collaborator fakes
# =====================================================

class RecordingNotifier:
    """Stands in for NotificationService and remembers every call"""

    def __init__(self):
        self.calls: List[Tuple[str, tuple]] = []

    def kinds(self) -> List[str]:
        return [kind for kind, _ in self.calls]

    async def notify_welcome(self, user):
        self.calls.append(("welcome", (user.email,)))
        return True

    async def notify_grade_posted(self, student, course, grade):
        self.calls.append(("grade_posted", (student.email, course.code, grade.grade.value)))
        return True

    async def notify_payment_completed(self, student, payment):
        self.calls.append(("payment_completed", (student.email, payment.transaction_id)))
        return True

    async def notify_password_reset(self, user, reset_token):
        self.calls.append(("password_reset", (user.email, reset_token)))
        return True


class FakeSMSService:
    """Twilio stand-in: code 123456 is always approved"""

    VALID_CODE = "123456"

    def __init__(self):
        self.sent_to: List[str] = []

    @property
    def is_configured(self) -> bool:
        return True

    async def send_verification_code(self, phone_number: str) -> Dict[str, str]:
        self.sent_to.append(phone_number)
        return {"sid": "VE0000000000000000000000000000test", "status": "pending"}

    async def check_verification_code(self, phone_number: str, code: str) -> Dict[str, str]:
        return {"status": "approved" if code == self.VALID_CODE else "pending"}

    async def send_whatsapp_message(self, phone_number: str, body: str) -> Dict[str, str]:
        return {"sid": "SM0000000000000000000000000000test"}


class ScriptedGateway(PaymentGateway):
    """Gateway whose verdict is set by the test"""

    def __init__(self, method: PaymentMethod, outcome: object = True):
        super().__init__("https://gateway.test/pay")
        self.method = method
        self.outcome = outcome
        self.verified: List[str] = []

    async def verify(self, payment) -> bool:
        self.verified.append(payment.transaction_id)
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return bool(self.outcome)


# =====================================================
# Database and client
# =====================================================

@pytest.fixture
async def database(tmp_path) -> AsyncGenerator[Database, None]:
    """A fresh SQLite database file per test"""
    db = Database(settings, url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await db.init_db()
    yield db
    await db.close()


@pytest.fixture
async def db_session(database: Database) -> AsyncGenerator[AsyncSession, None]:
    """Session for arranging and inspecting data outside of requests"""
    async with database.session_factory() as session:
        yield session


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def sms() -> FakeSMSService:
    return FakeSMSService()


@pytest.fixture
def gateways() -> GatewayRegistry:
    """The real stub gateways, which approve everything"""
    registry = GatewayRegistry()
    registry.register(TelesomZaadGateway())
    registry.register(DahabshiilGateway())
    return registry


@pytest.fixture
async def client(
    database: Database,
    notifier: RecordingNotifier,
    sms: FakeSMSService,
    gateways: GatewayRegistry
) -> AsyncGenerator[AsyncClient, None]:
    """Test client bound to the per-test database and fake collaborators"""
    app.state.database = database
    app.dependency_overrides[get_notifier] = lambda: notifier
    app.dependency_overrides[get_sms_service] = lambda: sms
    app.dependency_overrides[get_gateway_registry] = lambda: gateways

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url='http://test') as ac:
        yield ac

    app.dependency_overrides.clear()


# =====================================================
# Users
# =====================================================

UserFactory = Callable[..., Awaitable[User]]


@pytest.fixture
def make_user(db_session: AsyncSession) -> UserFactory:
    """Factory creating users directly in the database"""

    async def factory(
        role: UserRole = UserRole.STUDENT,
        student_id: Optional[str] = None,
        **overrides
    ) -> User:
        if role == UserRole.STUDENT and student_id is None:
            student_id = f"GU{fake.unique.random_number(digits=6, fix_len=True)}"
        fields = dict(
            email=fake.unique.email().lower(),
            hashed_password=get_password_hash(TEST_PASSWORD),
            first_name=fake.first_name(),
            last_name=fake.last_name(),
            role=role,
            department="Computer Science",
            student_id=student_id if role == UserRole.STUDENT else None,
            is_active=True,
        )
        fields.update(overrides)
        user = User(**fields)
        db_session.add(user)
        await db_session.commit()
        await db_session.refresh(user)
        return user

    return factory


@pytest.fixture
async def student(make_user: UserFactory) -> User:
    return await make_user(UserRole.STUDENT)


@pytest.fixture
async def faculty_user(make_user: UserFactory) -> User:
    return await make_user(UserRole.FACULTY, department="Computer Science")


@pytest.fixture
async def admin_user(make_user: UserFactory) -> User:
    return await make_user(UserRole.ADMIN, department="Administration")


def auth_headers_for(user: User) -> dict:
    """Generate authentication headers for a user"""
    token_data = {
        'sub': str(user.id),
        'email': user.email,
        'role': user.role.value
    }
    token = create_access_token(token_data)
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def student_headers(student: User) -> dict:
    return auth_headers_for(student)


@pytest.fixture
def faculty_headers(faculty_user: User) -> dict:
    return auth_headers_for(faculty_user)


@pytest.fixture
def admin_headers(admin_user: User) -> dict:
    return auth_headers_for(admin_user)


# =====================================================
# Academic records and payments
# =====================================================

CourseFactory = Callable[..., Awaitable[Course]]


@pytest.fixture
def make_course(db_session: AsyncSession) -> CourseFactory:
    async def factory(**overrides) -> Course:
        fields = dict(
            code=f"GEN{fake.unique.random_number(digits=4, fix_len=True)}",
            name=fake.catch_phrase(),
            description=fake.sentence(),
            credit_hours=3,
            department="Computer Science",
            prerequisites=[],
            is_active=True,
        )
        fields.update(overrides)
        course = Course(**fields)
        db_session.add(course)
        await db_session.commit()
        await db_session.refresh(course)
        return course

    return factory


@pytest.fixture
async def course(make_course: CourseFactory) -> Course:
    return await make_course(code="CS101", name="Introduction to Programming", credit_hours=3)


@pytest.fixture
def grade_payload(student: User, course: Course) -> dict:
    return {
        "studentId": student.student_id,
        "courseId": course.id,
        "grade": "A",
        "semester": "Fall",
        "academicYear": "2024-2025",
    }


@pytest.fixture
def payment_payload() -> dict:
    return {
        "amount": 450.00,
        "paymentMethod": "telesom_zaad",
        "semester": "Fall",
        "academicYear": "2024-2025",
    }


@pytest.fixture
def gateway_failure() -> UpstreamServiceError:
    return UpstreamServiceError("Telesom ZAAD", "connection reset")


@pytest.fixture
def scripted_gateway(gateways: GatewayRegistry) -> ScriptedGateway:
    """Replace the ZAAD gateway with one whose verdict the test controls"""
    gateway = ScriptedGateway(PaymentMethod.TELESOM_ZAAD)
    gateways.register(gateway)
    return gateway


@pytest.fixture
def headers_for() -> Callable[[User], dict]:
    return auth_headers_for


@pytest.fixture
def refetch(db_session: AsyncSession):
    """Fetch a fresh copy of a row, bypassing the identity map"""

    async def _refetch(model, pk):
        return await db_session.get(model, pk, populate_existing=True)

    return _refetch
