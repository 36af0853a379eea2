# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Generator, Iterator
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("SECRET_KEY", "test-secret-key-for-zeelink")
os.environ["ENVIRONMENT"] = "test"
os.environ["PASSWORD_HASH_ROUNDS"] = "4"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["VERIFICATION_STORE"] = "memory"
os.environ["SMS_BACKEND"] = "log"
os.environ["STORAGE_BACKEND"] = "local"

from zeelink.core.security import create_access_token, hash_password
from zeelink.db.ezclient import EzClient
from zeelink.db.session import Base
from zeelink.db.session import get_db as app_get_session
from zeelink.main import app as fastapi_app
from zeelink.models import Post, PostTopic, Site, Topic, User
from zeelink.services.sms import LoggingSmsGateway, get_sms_gateway
from zeelink.services.storage import get_object_storage
from zeelink.services.verification import (
    InMemoryVerificationStore,
    VerificationService,
    get_verification_service,
)

TEST_DB_URL = "sqlite://"
TEST_PASSWORD = "secret123"


class RecordingStorage:
    """Object storage double that keeps every upload in memory."""

    def __init__(self) -> None:
        self.objects: dict[str, bytes] = {}
        self.calls: list[str] = []

    async def put(self, key: str, data: bytes, content_type: str | None = None) -> None:
        self.calls.append(key)
        self.objects[key] = data


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    connection = engine.connect()
    transaction = connection.begin()
    SessionLocal = sessionmaker(
        bind=connection,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )
    session = SessionLocal()
    session.begin_nested()

    @event.listens_for(session, "after_transaction_end")
    def restart_savepoint(sess: Session, trans) -> None:  # pragma: no cover - SQLAlchemy internals
        if trans.nested and not getattr(trans._parent, "nested", False):
            session.begin_nested()

    try:
        yield session
    finally:
        event.remove(session, "after_transaction_end", restart_savepoint)
        session.close()

        if transaction.is_active:
            transaction.rollback()
        connection.close()

        # Ensure each test sees a clean database even if commits occurred.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_session_dependency(app: FastAPI, db_session: Session) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)


@pytest.fixture()
def verification() -> VerificationService:
    """Fresh code store per test so codes never leak between tests."""
    return VerificationService(InMemoryVerificationStore(), ttl_seconds=300)


@pytest.fixture()
def sms_gateway() -> LoggingSmsGateway:
    return LoggingSmsGateway()


@pytest.fixture()
def storage() -> RecordingStorage:
    return RecordingStorage()


@pytest.fixture(autouse=True)
def override_service_dependencies(
    app: FastAPI,
    verification: VerificationService,
    sms_gateway: LoggingSmsGateway,
    storage: RecordingStorage,
) -> Iterator[None]:
    overrides: dict[Any, Any] = {
        get_verification_service: lambda: verification,
        get_sms_gateway: lambda: sms_gateway,
        get_object_storage: lambda: storage,
    }
    app.dependency_overrides.update(overrides)
    try:
        yield
    finally:
        for dependency in overrides:
            app.dependency_overrides.pop(dependency, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def ez(db_session: Session) -> EzClient:
    """Data client bound to the per-test session."""
    return EzClient(db_session)


@pytest.fixture()
def site(db_session: Session) -> Iterator[Site]:
    """Create the default test site."""
    site = Site(name="主站")
    db_session.add(site)
    db_session.flush()
    db_session.refresh(site)
    yield site


def _make_user(db_session: Session, mobile: str, nickname: str, role: str, site: Site | None) -> User:
    user = User(
        mobile=mobile,
        password=hash_password(TEST_PASSWORD),
        nickname=nickname,
        role=role,
        current_site_id=site.id if site else None,
    )
    db_session.add(user)
    db_session.flush()
    db_session.refresh(user)
    return user


@pytest.fixture()
def test_user(db_session: Session, site: Site) -> Iterator[User]:
    """Create and return a persisted test user."""
    yield _make_user(db_session, "13800138000", "测试用户", "user", site)


@pytest.fixture()
def other_user(db_session: Session, site: Site) -> Iterator[User]:
    """Create and return a second persisted user."""
    yield _make_user(db_session, "13900139000", "另一个用户", "user", site)


@pytest.fixture()
def admin_user(db_session: Session, site: Site) -> Iterator[User]:
    yield _make_user(db_session, "13700137000", "管理员", "admin", site)


def token_for(user: User) -> str:
    return create_access_token(
        {
            "id": user.id,
            "mobile": user.mobile,
            "nickname": user.nickname,
            "role": user.role,
            "current_site_id": user.current_site_id,
        }
    )


@pytest.fixture()
def auth_headers(test_user: User) -> dict[str, str]:
    """Return authorization headers for the primary test user."""
    return {"Authorization": f"Bearer {token_for(test_user)}"}


@pytest.fixture()
def other_auth_headers(other_user: User) -> dict[str, str]:
    """Return authorization headers for the secondary test user."""
    return {"Authorization": f"Bearer {token_for(other_user)}"}


@pytest.fixture()
def admin_headers(admin_user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {token_for(admin_user)}"}


@pytest.fixture()
def topic(db_session: Session) -> Iterator[Topic]:
    topic = Topic(name="校园生活")
    db_session.add(topic)
    db_session.flush()
    db_session.refresh(topic)
    yield topic


@pytest.fixture()
def test_post(db_session: Session, test_user: User, site: Site, topic: Topic) -> Iterator[Post]:
    """Create a baseline post tagged with `topic`."""
    post = Post(content="第一条帖子", author_id=test_user.id, site_id=site.id)
    db_session.add(post)
    db_session.flush()
    db_session.add(PostTopic(post_id=post.id, topic_id=topic.id))
    db_session.flush()
    db_session.refresh(post)
    yield post
