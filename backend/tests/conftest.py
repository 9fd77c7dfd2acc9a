"""
BioCMS - Test Configuration and Fixtures
"""
import os
from typing import AsyncGenerator
import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from faker import Faker

# Set testing environment
os.environ['ENVIRONMENT'] = 'testing'
os.environ['DATABASE_URL'] = 'sqlite+aiosqlite:///./test_biocms.db'
os.environ['SECRET_KEY'] = 'test-secret-key-for-testing-only'
os.environ['JWT_SECRET_KEY'] = 'test-jwt-secret-key-for-testing'
os.environ['BCRYPT_ROUNDS'] = '4'
os.environ['SMTP_HOST'] = ''

from biocms.main import app
from biocms.core.cache import MemoryCacheBackend, ResponseCache
from biocms.core.database import Base, enable_sqlite_foreign_keys, get_db, json_serializer
from biocms.core.rate_limiter import RateLimiter
from biocms.core.security import get_password_hash, create_access_token
from biocms.models import Biography, Category
from biocms.models.user import User, UserRole

fake = Faker()

TEST_PASSWORD = 'testpassword123'

# Test database setup
TEST_DATABASE_URL = 'sqlite+aiosqlite:///./test_biocms.db'
test_engine = enable_sqlite_foreign_keys(
    create_async_engine(TEST_DATABASE_URL, echo=False, json_serializer=json_serializer)
)
TestSessionLocal = async_sessionmaker(
    bind=test_engine,
    class_=AsyncSession,
    expire_on_commit=False
)


@pytest.fixture(scope='function')
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database for each test"""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with TestSessionLocal() as session:
        yield session
        await session.rollback()

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Test client with database override and fresh limiter/cache state"""
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.state.rate_limiter = RateLimiter(storage_uri='memory://')
    app.state.response_cache = ResponseCache(MemoryCacheBackend())

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url='http://test') as ac:
        yield ac

    app.dependency_overrides.clear()


async def make_user(db_session: AsyncSession, role: UserRole = UserRole.USER, **overrides) -> User:
    values = dict(
        first_name=fake.first_name(),
        last_name=fake.last_name(),
        email=fake.unique.email().lower(),
        hashed_password=get_password_hash(TEST_PASSWORD),
        role=role,
        is_active=True,
    )
    values.update(overrides)
    user = User(**values)
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


def bearer(user: User) -> dict:
    token = create_access_token(user.id, role=user.role.value)
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
async def test_user(db_session: AsyncSession) -> User:
    """Create a regular user"""
    return await make_user(db_session)


@pytest.fixture
async def admin_user(db_session: AsyncSession) -> User:
    """Create an admin user"""
    return await make_user(db_session, role=UserRole.ADMIN)


@pytest.fixture
def auth_headers(test_user: User) -> dict:
    """Authentication headers for the regular user"""
    return bearer(test_user)


@pytest.fixture
def admin_headers(admin_user: User) -> dict:
    """Authentication headers for the admin user"""
    return bearer(admin_user)


@pytest.fixture
async def category(db_session: AsyncSession) -> Category:
    category = Category(name='Science', slug='science', description='Scientists and inventors')
    db_session.add(category)
    await db_session.commit()
    await db_session.refresh(category)
    return category


@pytest.fixture
async def biographies(db_session: AsyncSession, category: Category) -> list:
    """Three published biographies and one draft"""
    rows = [
        Biography(name='Marie Curie', slug='marie-curie', occupation=['Physicist', 'Chemist'],
                  nationality=['Polish', 'French'], category_id=category.id, featured=True, views=120),
        Biography(name='Ada Lovelace', slug='ada-lovelace', occupation=['Mathematician'],
                  nationality=['British'], category_id=category.id, views=80),
        Biography(name='Nikola Tesla', slug='nikola-tesla', occupation=['Inventor'],
                  nationality=['Serbian', 'American'], views=200),
        Biography(name='Draft Person', slug='draft-person', published=False, views=5),
    ]
    db_session.add_all(rows)
    await db_session.commit()
    for row in rows:
        await db_session.refresh(row)
    return rows
