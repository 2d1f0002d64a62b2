"""
Union site - Test Configuration and Fixtures
"""
import os
from typing import AsyncGenerator, Dict, List, Tuple
import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker
from faker import Faker

# Set testing environment
os.environ['TESTING'] = 'true'
os.environ['ENVIRONMENT'] = 'testing'
os.environ['DATABASE_URL'] = 'sqlite+aiosqlite:///./test.db'
os.environ['SECRET_KEY'] = 'test-secret-key-for-testing-only'
os.environ['JWT_SECRET_KEY'] = 'test-jwt-secret-key-for-testing'
os.environ['RATE_LIMIT_ENABLED'] = 'false'
os.environ['BCRYPT_ROUNDS'] = '4'
os.environ['ADMIN_PIN'] = '1229'

import unionsite.models  # noqa: F401
from unionsite.main import app
from unionsite.core.database import Base, get_db
from unionsite.core.exceptions import PushDeliveryError
from unionsite.core.security import get_password_hash, create_access_token, create_admin_token
from unionsite.models.member import Member
from unionsite.models.push import PushSubscription
from unionsite.models.user import User, UserRole
from unionsite.services.push_service import push_service
from unionclient.models import now_iso
from unionclient.push import PushBootstrap

fake = Faker()

MEMBER_PASSWORD = 'memberpass123'

# Test database setup
TEST_DATABASE_URL = 'sqlite+aiosqlite:///./test.db'
test_engine = create_async_engine(TEST_DATABASE_URL, echo=False)
TestSessionLocal = sessionmaker(
    bind=test_engine,
    class_=AsyncSession,
    expire_on_commit=False
)


class RecordingTransport:
    """Push transport that records deliveries and rejects chosen endpoints"""

    def __init__(self):
        self.sent: List[Tuple[str, dict]] = []
        self.reject: Dict[str, int] = {}

    async def send(self, subscription, payload):
        status = self.reject.get(subscription.endpoint)
        if status:
            raise PushDeliveryError(subscription.endpoint, status)
        self.sent.append((subscription.endpoint, payload))


@pytest.fixture(autouse=True)
def push_transport(monkeypatch) -> RecordingTransport:
    """Fresh push transport and bootstrap singleton for every test"""
    transport = RecordingTransport()
    monkeypatch.setattr(push_service, 'transport', transport)
    monkeypatch.setattr(PushBootstrap, '_instance', None)
    return transport


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
async def app_transport(db_session: AsyncSession) -> AsyncGenerator[ASGITransport, None]:
    """In-process transport to the API with the test database"""
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    yield ASGITransport(app=app)
    app.dependency_overrides.clear()


@pytest.fixture
async def site_transport(db_session: AsyncSession) -> AsyncGenerator[ASGITransport, None]:
    """In-process transport where every request gets its own session"""
    async def override_get_db():
        async with TestSessionLocal() as session:
            try:
                yield session
                if session.new or session.dirty or session.deleted:
                    await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    yield ASGITransport(app=app)
    app.dependency_overrides.clear()


@pytest.fixture
async def client(app_transport: ASGITransport) -> AsyncGenerator[AsyncClient, None]:
    """Create test client with database override"""
    async with AsyncClient(transport=app_transport, base_url='http://test') as ac:
        yield ac


async def create_account(
    db: AsyncSession,
    approved: bool = True,
    with_profile: bool = True,
    role: UserRole = UserRole.MEMBER,
) -> User:
    """Login account, optionally with its membership application"""
    email = fake.unique.email()
    user = User(
        email=email,
        hashed_password=get_password_hash(MEMBER_PASSWORD),
        role=role,
        is_active=True,
    )
    db.add(user)
    await db.flush()

    if with_profile:
        db.add(Member(
            id=user.id,
            name=fake.name(),
            birth_date='900101',
            phone='010-1234-5678',
            email=email,
            garage='도봉',
            is_approved=approved,
            created_at=now_iso(),
        ))
    await db.commit()
    await db.refresh(user)
    return user


def headers_for(user: User) -> dict:
    token = create_access_token({
        'sub': user.id,
        'email': user.email,
        'role': user.role.value
    })
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
async def member_user(db_session: AsyncSession) -> User:
    """Approved member"""
    return await create_account(db_session)


@pytest.fixture
async def other_member(db_session: AsyncSession) -> User:
    """A second approved member"""
    return await create_account(db_session)


@pytest.fixture
async def pending_user(db_session: AsyncSession) -> User:
    """Applied but not approved yet"""
    return await create_account(db_session, approved=False)


@pytest.fixture
def auth_headers(member_user: User) -> dict:
    return headers_for(member_user)


@pytest.fixture
def other_headers(other_member: User) -> dict:
    return headers_for(other_member)


@pytest.fixture
def pending_headers(pending_user: User) -> dict:
    return headers_for(pending_user)


@pytest.fixture
def admin_headers() -> dict:
    """Token from the shared admin PIN gate"""
    return {'Authorization': f'Bearer {create_admin_token()}'}


@pytest.fixture
async def admin_subscription(db_session: AsyncSession) -> PushSubscription:
    subscription = PushSubscription(
        endpoint='https://push.invalid/admin-device',
        p256dh='admin-key',
        auth='admin-auth',
        is_admin=True,
    )
    db_session.add(subscription)
    await db_session.commit()
    return subscription


@pytest.fixture
async def member_subscription(db_session: AsyncSession) -> PushSubscription:
    subscription = PushSubscription(
        endpoint='https://push.invalid/member-device',
        p256dh='member-key',
        auth='member-auth',
        is_admin=False,
    )
    db_session.add(subscription)
    await db_session.commit()
    return subscription


@pytest.fixture
def member_password() -> str:
    """Password of every account made by create_account"""
    return MEMBER_PASSWORD
