import logging
from typing import Optional

from sqlalchemy import func, select

from bizledger.core.database import Database
from bizledger.core.roles import Role
from bizledger.models import User
from bizledger.schemas import UserCreate
from bizledger.services.auth_service import AuthService


logger = logging.getLogger(__name__)

users = User.__table__


def ensure_bootstrap_admin(db: Database, username: Optional[str], password: Optional[str]) -> Optional[int]:
    """
    Create the first admin account when credentials are configured and no
    admin exists yet. Returns the new user id, or None when nothing was done.
    """
    if not username or not password:
        return None

    db.query(select(func.count()).select_from(users).where(users.c.role == Role.admin.value))
    if db.scalar():
        return None

    user_id = AuthService(db).register(
        UserCreate(username=username, password=password, full_name="Administrator", role=Role.admin)
    )
    logger.info("Bootstrap admin '%s' created", username)
    return user_id
