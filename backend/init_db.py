"""Create the schema and, when configured, the bootstrap administrator."""

from typing import Optional

from loguru import logger
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from core.logging_config import configure_logging
from core.sentry_config import init_sentry
from models.config import settings
from repositories.database import Base, engine, transaction
from repositories.db_models import User, UserRole
from repositories.user_repository import UserRepository


def ensure_bootstrap_admin(db: Session) -> Optional[User]:
    """
    Create the administrator named by BOOTSTRAP_ADMIN_EMAIL if it is missing.

    Returns:
        The created admin, or None when disabled or already present
    """
    email = settings.BOOTSTRAP_ADMIN_EMAIL
    if not email:
        return None

    repo = UserRepository(db)
    if repo.get_by_email(email):
        return None

    with transaction(db):
        admin = repo.create(
            User(
                email=email,
                username=settings.BOOTSTRAP_ADMIN_USERNAME,
                role=UserRole.ADMIN,
                email_verified=True,
            )
        )
    logger.info(f"Bootstrap admin created (user {admin.id})")
    return admin


def init_db(bind: Optional[Engine] = None) -> None:
    """Create all tables and the bootstrap administrator."""
    bind = bind or engine
    Base.metadata.create_all(bind=bind)
    logger.info("Database schema ready")

    db = sessionmaker(autocommit=False, autoflush=False, bind=bind)()
    try:
        ensure_bootstrap_admin(db)
    finally:
        db.close()


if __name__ == "__main__":
    configure_logging()
    init_sentry()
    init_db()
