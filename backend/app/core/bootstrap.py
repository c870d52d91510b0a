# app/core/bootstrap.py
"""
Startup tasks: seed an administrator account on an empty installation.
"""
import os
import logging
from app.models.user import User
from app.core.security import hash_password

logger = logging.getLogger("uvicorn.error")

async def ensure_default_admin() -> None:
    """
    Create an admin from environment variables when none exists yet.

    Environment variables:
      ADMIN_EMAIL    (default: "admin@example.com")
      ADMIN_NAME     (default: "Administrator")
      ADMIN_PASSWORD (required, otherwise nothing is created)
    """
    if await User.filter(role="admin").exists():
        return

    admin_password = os.getenv("ADMIN_PASSWORD")
    if not admin_password:
        logger.warning("[bootstrap] No admin present, but ADMIN_PASSWORD not set -> skip creating default admin.")
        return

    admin_email = os.getenv("ADMIN_EMAIL", "admin@example.com")
    existing = await User.get_or_none(email=admin_email)
    if existing:
        # Promote the account instead of failing on the unique email
        existing.role = "admin"
        await existing.save()
        logger.warning("[bootstrap] Promoted existing user to admin -> email=%s id=%s", existing.email, existing.id)
        return

    u = await User.create(
        email=admin_email,
        name=os.getenv("ADMIN_NAME", "Administrator"),
        password_hash=hash_password(admin_password),
        role="admin",
    )
    logger.warning("[bootstrap] Created default admin -> email=%s id=%s", u.email, u.id)
