"""
Pytest configuration and fixtures for backend tests.
"""

import os
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable
from uuid import uuid4

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Add backend directory to path for imports
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

# Set test environment variables before importing config
os.environ["ENVIRONMENT"] = "development"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["LOG_DIR"] = ""
os.environ.pop("SENTRY_DSN", None)

from repositories.database import Base  # noqa: E402
import repositories.db_models as db_models  # noqa: E402

# Test database engine (in-memory SQLite)
TEST_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


@event.listens_for(engine, "connect")
def _enable_foreign_keys(dbapi_connection, connection_record):
    """SQLite ignores foreign keys unless asked per connection."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session():
    """Create a fresh in-memory database session for each test."""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db(db_session):
    """Alias for db_session."""
    return db_session


@pytest.fixture
def make_user(db_session) -> Callable[..., db_models.User]:
    """Factory creating committed users; keyword arguments override defaults."""

    def _make_user(**overrides) -> db_models.User:
        suffix = uuid4().hex[:8]
        values = {
            "email": f"user_{suffix}@example.com",
            "username": f"user_{suffix}",
            "password_hash": "hashed-password",
            "role": db_models.UserRole.USER,
            "status": db_models.UserStatus.ACTIVE,
            "email_verified": False,
        }
        values.update(overrides)
        user = db_models.User(**values)
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make_user


@pytest.fixture
def test_user(make_user) -> db_models.User:
    """Create a regular user."""
    return make_user(email="test@example.com", username="testuser")


@pytest.fixture
def admin_user(make_user) -> db_models.User:
    """Create an admin acting on other accounts."""
    return make_user(
        email="admin@example.com",
        username="adminuser",
        role=db_models.UserRole.ADMIN,
        email_verified=True,
    )


@pytest.fixture
def other_admin(make_user) -> db_models.User:
    """Create a second admin, used as a protected target."""
    return make_user(
        email="admin2@example.com",
        username="adminuser2",
        role=db_models.UserRole.ADMIN,
    )


@pytest.fixture
def make_session(db_session) -> Callable[..., db_models.UserSession]:
    """Factory creating live login sessions for a user."""

    def _make_session(user: db_models.User, **overrides) -> db_models.UserSession:
        values = {
            "user_id": user.id,
            "token": uuid4().hex,
            "refresh_token": uuid4().hex,
            "ip_address": "203.0.113.7",
            "user_agent": "pytest",
            "expires_at": datetime.now(timezone.utc) + timedelta(days=7),
        }
        values.update(overrides)
        session = db_models.UserSession(**values)
        db_session.add(session)
        db_session.commit()
        return session

    return _make_session


@pytest.fixture
def populated_user(db_session, test_user, make_user) -> db_models.User:
    """
    A user owning one row of every kind covered by export and deletion.
    """
    other = make_user(email="friend@example.com", username="friend")
    uid = test_user.id

    db_session.add_all(
        [
            db_models.Profile(
                user_id=uid, display_name="Test User", bio="Hello", location="Montreal"
            ),
            db_models.UserSkill(user_id=uid, skill_name="Python", proficiency=4),
            db_models.WorkExperience(user_id=uid, title="Engineer", company="Acme"),
            db_models.Education(user_id=uid, institution="McGill", degree="BSc"),
            db_models.PortfolioProject(user_id=uid, title="Side project"),
            db_models.NotificationPreference(user_id=uid, notification_type="digest"),
            db_models.OAuthProvider(
                user_id=uid, provider="github", provider_user_id="gh-1"
            ),
            db_models.UserSession(
                user_id=uid,
                token=uuid4().hex,
                expires_at=datetime.now(timezone.utc) + timedelta(days=1),
            ),
            db_models.UserConsent(
                user_id=uid,
                consent_type=db_models.ConsentType.ANALYTICS,
                status=db_models.ConsentStatus.GRANTED,
            ),
            db_models.ConsentLog(
                user_id=uid,
                consent_type=db_models.ConsentType.ANALYTICS,
                status=db_models.ConsentStatus.GRANTED,
                version=1,
            ),
            db_models.Notification(user_id=uid, type="system", title="Welcome"),
            db_models.Message(
                sender_id=uid, recipient_id=other.id, subject="Hi", body="Hello"
            ),
            db_models.Message(
                sender_id=other.id, recipient_id=uid, subject="Re: Hi", body="Hey"
            ),
            db_models.EmailUnsubscribe(
                user_id=uid,
                email=test_user.email,
                unsubscribe_type="marketing",
                token=uuid4().hex,
            ),
        ]
    )
    db_session.flush()

    article = db_models.Article(author_id=uid, title="My article", slug="my-article")
    other_article = db_models.Article(
        author_id=other.id, title="Other article", slug="other-article"
    )
    topic = db_models.Topic(author_id=uid, title="My topic", slug="my-topic")
    job = db_models.Job(title="Backend developer")
    db_session.add_all([article, other_article, topic, job])
    db_session.flush()

    db_session.add_all(
        [
            db_models.Reply(topic_id=topic.id, author_id=uid, content="First"),
            db_models.Reply(topic_id=topic.id, author_id=other.id, content="Second"),
            db_models.Bookmark(user_id=uid, article_id=other_article.id),
            db_models.Bookmark(user_id=other.id, article_id=article.id),
            db_models.JobApplication(user_id=uid, job_id=job.id),
        ]
    )
    db_session.commit()
    db_session.refresh(test_user)
    return test_user
