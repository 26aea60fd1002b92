"""
SBTE Portal - Test Configuration and Fixtures
"""
import os
import time
from typing import AsyncGenerator, Callable, Dict, Optional

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import NullPool
from faker import Faker

# Set testing environment before the app reads its settings
os.environ['ENVIRONMENT'] = 'testing'
os.environ['DATABASE_URL'] = 'sqlite+aiosqlite:///./test_sbte.db'
os.environ['SECRET_KEY'] = 'test-secret-key-for-testing-only'
os.environ['JWT_SECRET_KEY'] = 'test-jwt-secret-key-for-testing'
os.environ['CAPTCHA_SECRET'] = 'test-captcha-salt'
os.environ['BCRYPT_ROUNDS'] = '4'
os.environ['RATE_LIMIT_ENABLED'] = 'false'
os.environ['RAZORPAY_KEY_ID'] = 'rzp_test_key'
os.environ['RAZORPAY_KEY_SECRET'] = 'rzp_test_secret'
os.environ['RAZORPAY_WEBHOOK_SECRET'] = 'rzp_webhook_secret'

from app.main import app
from app.core.database import Base, get_db
from app.core.security import get_password_hash, create_token_pair
from app.models import College, Department, User, UserRole, Student
from app.services.payment_service import get_payment_gateway
from app.services.storage_service import StorageService, get_storage
from app.utils.captcha import hash_answer

fake = Faker()

TEST_PASSWORD = 'Str0ng!Passw0rd'

# Test database setup
TEST_DATABASE_URL = 'sqlite+aiosqlite:///./test_sbte.db'
test_engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=NullPool)
TestSessionLocal = async_sessionmaker(
    bind=test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False
)


class FakeGateway:
    """Stands in for Razorpay: records orders instead of calling the API"""

    key_id = 'rzp_test_key'
    is_configured = True

    def __init__(self):
        self.orders = []

    def create_order(self, amount_paise, currency, receipt, notes=None):
        order = {
            'id': f'order_test{len(self.orders) + 1}',
            'amount': amount_paise,
            'currency': currency,
            'receipt': receipt,
        }
        self.orders.append(order)
        return order


@pytest.fixture(scope='function')
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database session for each test"""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with TestSessionLocal() as session:
        yield session
        await session.rollback()

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
def storage(tmp_path) -> StorageService:
    return StorageService(backend='local', upload_dir=str(tmp_path / 'uploads'))


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
async def client(db_session: AsyncSession, storage: StorageService, gateway: FakeGateway) -> AsyncGenerator[AsyncClient, None]:
    """Create test client with database, storage and payment overrides"""
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_payment_gateway] = lambda: gateway

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url='http://test') as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
async def college(db_session: AsyncSession) -> College:
    college = College(
        name='Government Polytechnic Patna',
        address=fake.address(),
        contact_email=fake.email(),
        contact_phone='9876543210',
    )
    db_session.add(college)
    await db_session.commit()
    return college


@pytest.fixture
async def other_college(db_session: AsyncSession) -> College:
    college = College(
        name='Government Polytechnic Gaya',
        address=fake.address(),
        contact_email=fake.email(),
        contact_phone='9876543211',
    )
    db_session.add(college)
    await db_session.commit()
    return college


@pytest.fixture
async def department(db_session: AsyncSession, college: College) -> Department:
    department = Department(name='Civil Engineering', college_id=college.id)
    db_session.add(department)
    await db_session.commit()
    return department


@pytest.fixture
def make_user(db_session: AsyncSession) -> Callable:
    """Factory: await make_user(UserRole.HOD, college_id=...)"""
    async def _make(role: UserRole, college_id: Optional[str] = None, **overrides) -> User:
        fields = dict(
            email=fake.unique.email().lower(),
            name=fake.name(),
            hashed_password=get_password_hash(TEST_PASSWORD),
            role=role,
            college_id=college_id,
            is_active=True,
            is_verified=True,
        )
        fields.update(overrides)
        user = User(**fields)
        db_session.add(user)
        await db_session.commit()
        return user

    return _make


@pytest.fixture
async def sbte_admin(make_user) -> User:
    return await make_user(UserRole.SBTE_ADMIN)


@pytest.fixture
async def college_admin(make_user, college: College) -> User:
    return await make_user(UserRole.COLLEGE_SUPER_ADMIN, college_id=college.id)


@pytest.fixture
async def finance_manager(make_user, college: College) -> User:
    return await make_user(UserRole.FINANCE_MANAGER, college_id=college.id)


@pytest.fixture
async def student_user(make_user, db_session: AsyncSession, college: College) -> User:
    user = await make_user(UserRole.STUDENT, college_id=college.id, phone='9000000001')
    db_session.add(Student(
        name=user.name,
        email=user.email,
        enrollment_no='E21CE01001',
        college_id=college.id,
        user_id=user.id,
    ))
    await db_session.commit()
    return user


def auth_headers(user: User) -> Dict[str, str]:
    """Bearer header for user"""
    token = create_token_pair(user)['access_token']
    return {'Authorization': f'Bearer {token}'}


def captcha_fields(answer: str = '7', expires_in_ms: int = 60_000) -> Dict[str, object]:
    """A solved captcha as the login and reset forms submit it"""
    expires_at = int(time.time() * 1000) + expires_in_ms
    return {
        'captchaAnswer': answer,
        'captchaHash': hash_answer(answer, expires_at),
        'captchaExpiresAt': expires_at,
    }


def pdf_bytes(text: str = 'notice') -> bytes:
    return b'%PDF-1.4\n% ' + text.encode() + b'\n%%EOF\n'
