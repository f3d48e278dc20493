from __future__ import annotations

import logging

from sqlalchemy import select

from backend.app.core.config import settings
from backend.app.core.logging_config import configure_logging
from backend.app.core.security import get_password_hash
from backend.app.db.session import SessionLocal
from backend.app.db.models.models_v1 import User
from backend.app.db.models.core_types import Role

logger = logging.getLogger(__name__)


def run_seed():
    db = SessionLocal()
    try:
        # First superadmin; everyone else is registered through /auth/register.
        user = db.scalar(select(User).where(User.email == settings.seed_admin_email.lower()))
        if not user:
            user = User(
                name=settings.seed_admin_name,
                email=settings.seed_admin_email.lower(),
                password_hash=get_password_hash(settings.seed_admin_password),
                role=Role.superadmin,
                is_active=True,
            )
            db.add(user)
            db.commit()
            logger.info("Seeded superadmin %s", user.email)
        else:
            logger.info("Superadmin %s already present", user.email)
    finally:
        db.close()


if __name__ == "__main__":
    configure_logging(settings.log_level, debug=settings.debug)
    run_seed()
