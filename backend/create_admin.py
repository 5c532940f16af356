#!/usr/bin/env python3
"""
Create an admin user, or reset an existing user's password and promote it to admin.
Run inside the backend container: docker-compose exec backend python create_admin.py <username> <password>
"""
import logging
import sys
import os

# Add the backend directory to the path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from sqlalchemy import bindparam, select, update

from bizledger.core.database import Database, SessionLocal, init_db
from bizledger.core.errors import LedgerError
from bizledger.core.logging_config import configure_logging
from bizledger.core.roles import Role
from bizledger.core.security import hash_password
from bizledger.models import User
from bizledger.schemas import UserCreate
from bizledger.services.auth_service import AuthService

logger = logging.getLogger("create_admin")

users = User.__table__


def create_admin(username: str, password: str) -> int:
    init_db()
    with SessionLocal() as session:
        db = Database(session)
        db.query(select(users.c.id).where(users.c.username == bindparam("username")))
        db.bind("username", username)
        existing = db.single()

        if existing:
            db.query(update(users).where(users.c.id == bindparam("user_id")))
            db.bind("user_id", existing["id"])
            db.bind("role", Role.admin.value)
            db.bind("is_active", True)
            db.bind("password_hash", hash_password(password))
            db.execute()
            logger.info("User '%s' updated to admin", username)
            return existing["id"]

        user_id = AuthService(db).register(
            UserCreate(username=username, password=password, full_name="Administrator", role=Role.admin)
        )
        logger.info("Admin user '%s' created with ID %s", username, user_id)
        return user_id


if __name__ == "__main__":
    configure_logging()
    if len(sys.argv) != 3:
        print("usage: python create_admin.py <username> <password>")
        sys.exit(2)
    try:
        create_admin(sys.argv[1], sys.argv[2])
    except LedgerError as exc:
        logger.error("Could not create admin: %s", exc.detail)
        sys.exit(1)
