"""Seed the database with the default admin user and the global sections row."""

import logging

from sqlalchemy import select

from feedback_hub.core.config import settings
from feedback_hub.core.database import SessionLocal
from feedback_hub.models import User
from feedback_hub.services.auth import hash_password
from feedback_hub.services.global_sections import ensure_global_sections

logger = logging.getLogger(__name__)


def seed() -> User:
    """Create the default admin and the empty global sections. Idempotent."""
    db = SessionLocal()
    try:
        admin = db.execute(
            select(User).where(User.username == settings.ADMIN_USERNAME)
        ).scalar_one_or_none()
        if admin is None:
            admin = User(
                username=settings.ADMIN_USERNAME,
                email=settings.ADMIN_EMAIL.lower(),
                password_hash=hash_password(settings.ADMIN_PASSWORD),
                role="admin",
            )
            db.add(admin)
            logger.info("Created admin user %s", settings.ADMIN_USERNAME)

        ensure_global_sections(db)
        db.commit()
        db.refresh(admin)
        return admin
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    user = seed()
    print(f"Admin: {user.username} <{user.email}> (id={user.id})")
