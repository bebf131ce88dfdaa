"""
Inkpress Backend — Test Configuration (conftest.py)
====================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Every test gets a fresh in-memory SQLite database (aiosqlite,
       StaticPool so all sessions share one connection), created from the
       ORM metadata. The FastAPI app's session dependency is overridden to
       use that database.

Fixture Hierarchy (all function-scoped):
    ├── db_engine:          in-memory engine with all tables created
    ├── db_session:         AsyncSession for service-level tests
    ├── app / test_client:  create_app() + httpx AsyncClient over ASGITransport
    ├── user_factory:       inserts users (role configurable), returns User
    ├── category_factory:   inserts categories
    ├── post_factory:       inserts posts directly (bypasses the service)
    ├── temp_storage:       temporary upload root
    └── sample_image_bytes: a real (tiny) PNG produced by Pillow
"""

import io
import os
import tempfile

# Must be set before anything from inkpress is imported: settings, the
# engine and the file service singleton are built at import time
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["UPLOAD_PATH"] = tempfile.mkdtemp(prefix="inkpress_test_")
os.environ["JWT_SECRET"] = "test-secret-not-for-production"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["RATE_LIMIT_REQUESTS"] = "100000"

from typing import AsyncGenerator, Dict, List, Optional  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from PIL import Image  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

import inkpress.models  # noqa: E402,F401
from inkpress.database import Base, get_db_session, managed_session  # noqa: E402
from inkpress.main import create_app  # noqa: E402
from inkpress.models import Category, Post, User  # noqa: E402
from inkpress.services.auth_service import create_access_token, hash_password  # noqa: E402

DEFAULT_PASSWORD = "Secret123"


# ══════════════════════════════════════════════════════════════════════════
# Database
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def db_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """
    Session for calling services directly.

    Usage:
        async def test_create(db_session, user_factory):
            user = await user_factory()
            post = await post_service.create_post(db_session, user, data)
    """
    async with session_factory() as session:
        yield session


# ══════════════════════════════════════════════════════════════════════════
# Application
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def app(session_factory):
    application = create_app()

    async def override_db_session() -> AsyncGenerator[AsyncSession, None]:
        async with managed_session(session_factory) as session:
            yield session

    application.dependency_overrides[get_db_session] = override_db_session
    return application


@pytest_asyncio.fixture
async def test_client(app):
    """
    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
            assert response.status_code == 200
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def auth_headers():
    """Builds a bearer header for a user: `auth_headers(user)`."""

    def build(user: User) -> Dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user.id)}"}

    return build


# ══════════════════════════════════════════════════════════════════════════
# Factories
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def user_factory(db_session):
    counter = {"n": 0}

    async def make_user(
        role: str = "user",
        username: Optional[str] = None,
        email: Optional[str] = None,
        password: str = DEFAULT_PASSWORD,
        is_active: bool = True,
    ) -> User:
        counter["n"] += 1
        n = counter["n"]
        user = User(
            username=username or f"writer{n}",
            email=email or f"writer{n}@example.com",
            password_hash=hash_password(password),
            first_name="Test",
            last_name=f"Writer{n}",
            role=role,
            is_active=is_active,
        )
        db_session.add(user)
        await db_session.commit()
        return user

    return make_user


@pytest.fixture
def category_factory(db_session):
    counter = {"n": 0}

    async def make_category(name: Optional[str] = None, is_active: bool = True) -> Category:
        counter["n"] += 1
        name = name or f"Category {counter['n']}"
        category = Category(
            name=name,
            slug=name.lower().replace(" ", "-"),
            color="#007bff",
            is_active=is_active,
        )
        db_session.add(category)
        await db_session.commit()
        return category

    return make_category


@pytest.fixture
def post_factory(db_session):
    counter = {"n": 0}

    async def make_post(
        author: User,
        category: Category,
        title: Optional[str] = None,
        content: str = "Plenty of words about nothing in particular.",
        is_published: bool = True,
        tags: Optional[List[str]] = None,
    ) -> Post:
        counter["n"] += 1
        title = title or f"Post number {counter['n']}"
        post = Post(
            title=title,
            slug=f"post-number-{counter['n']}",
            content=content,
            is_published=is_published,
            view_count=0,
            author=author,
            category=category,
            comments=[],
        )
        post.set_tags(tags or [])
        db_session.add(post)
        await db_session.commit()
        return post

    return make_post


# ══════════════════════════════════════════════════════════════════════════
# Isolated unit-test helpers
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def temp_storage(tmp_path):
    storage_dir = tmp_path / "storage"
    storage_dir.mkdir()
    return str(storage_dir)


@pytest.fixture
def sample_image_bytes():
    """An 8x8 PNG; small, but decodes as a real image."""
    buf = io.BytesIO()
    Image.new("RGB", (8, 8), color=(200, 40, 40)).save(buf, format="PNG")
    return buf.getvalue()
