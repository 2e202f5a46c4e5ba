"""
pytest 공통 설정
"""
import sys
import os
import uuid
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest
import pytest_asyncio
from sqlalchemy import func, select
from sqlalchemy.pool import NullPool

from core.config import Settings
from core.database import create_engine, create_session_factory
from core.security import TokenIssuer
from main import build_auth_service, init_models, shutdown
from models.users import User

ACCESS_SECRET = "test-access-secret-0123456789abcdefghijklmnop"
REFRESH_SECRET = "test-refresh-secret-0123456789abcdefghijklmnop"


def make_settings(database_url: str = "sqlite+aiosqlite://", **overrides) -> Settings:
    values = {
        "database_url": database_url,
        "access_secret_key": ACCESS_SECRET,
        "refresh_secret_key": REFRESH_SECRET,
        "bcrypt_rounds": 4,  # 테스트 속도용 최소 cost
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def settings(tmp_path):
    # 테스트마다 새 SQLite 파일 DB
    return make_settings(f"sqlite+aiosqlite:///{tmp_path / 'auth.db'}")


@pytest_asyncio.fixture
async def engine(settings):
    # NullPool - 매 세션마다 새 커넥션 (테스트 전용)
    engine = create_engine(settings, poolclass=NullPool)
    await init_models(engine)
    yield engine
    await shutdown(engine)


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def auth_service(settings, engine):
    return build_auth_service(settings, engine)


@pytest.fixture
def issuer(settings):
    return TokenIssuer(settings)


@pytest.fixture
def unique_email():
    return f"user_{uuid.uuid4().hex[:8]}@example.com"


@pytest_asyncio.fixture
async def registered_user(auth_service, unique_email):
    """회원가입만 끝난 Local 유저 (email, password, user_id)"""
    password = "Test1234!"
    result = await auth_service.register(unique_email, password)
    return unique_email, password, result.user_id


async def count_users(session_factory, email: str | None = None) -> int:
    async with session_factory() as db:
        stmt = select(func.count()).select_from(User)
        if email is not None:
            stmt = stmt.where(User.email == email)
        return (await db.execute(stmt)).scalar_one()


async def load_user(session_factory, user_id: str) -> User:
    async with session_factory() as db:
        return await db.get(User, user_id)
