import logging
from datetime import datetime
from typing import Optional, Union

from sqlalchemy import bindparam, insert, select, update

from bizledger.core.database import Database
from bizledger.core.errors import AuthenticationFailure, AuthorizationDenied, DuplicateUsername, NotFound
from bizledger.core.roles import Role, role_satisfies
from bizledger.core.security import hash_password, verify_password
from bizledger.core.session import Principal, PrincipalSession
from bizledger.models import User
from bizledger.schemas import UserCreate


logger = logging.getLogger(__name__)

users = User.__table__

# Never returns password_hash
PUBLIC_USER_COLUMNS = (
    users.c.id,
    users.c.username,
    users.c.full_name,
    users.c.email,
    users.c.role,
    users.c.is_active,
    users.c.last_login,
    users.c.session_version,
)


class AuthService:
    def __init__(self, db: Database):
        self.db = db

    def _username_exists(self, username: str) -> bool:
        self.db.query(select(users.c.id).where(users.c.username == bindparam("username")))
        self.db.bind("username", username)
        return self.db.single() is not None

    def register(self, data: UserCreate) -> int:
        username = data.username.strip()
        if self._username_exists(username):
            raise DuplicateUsername(f"Username '{username}' already exists")

        self.db.query(insert(users))
        self.db.bind("username", username)
        self.db.bind("password_hash", hash_password(data.password))
        self.db.bind("full_name", data.full_name)
        self.db.bind("email", data.email)
        self.db.bind("role", Role(data.role).value)
        self.db.bind("is_active", True)
        self.db.bind("session_version", 0)
        self.db.bind("created_at", datetime.now())
        self.db.execute()
        user_id = self.db.last_insert_id()

        logger.info("Registered user %s (%s) as %s", username, user_id, Role(data.role).value)
        return user_id

    def login(self, session: PrincipalSession, username: str, password: str) -> bool:
        """
        Verify credentials against an active user and establish the session
        principal. Absent user, inactive user and wrong password all just
        return False.
        """
        self.db.query(
            select(users.c.id, users.c.username, users.c.role, users.c.password_hash).where(
                users.c.username == bindparam("username"),
                users.c.is_active.is_(True),
            )
        )
        self.db.bind("username", username)
        user = self.db.single()

        if user is None or not verify_password(password, user["password_hash"]):
            logger.warning("Failed login for %s", username)
            return False

        session.set_principal(Principal(user_id=user["id"], username=user["username"], role=Role(user["role"])))

        self.db.query(update(users).where(users.c.id == bindparam("user_id")))
        self.db.bind("user_id", user["id"])
        self.db.bind("last_login", datetime.now())
        self.db.execute()

        logger.info("User %s logged in", username)
        return True

    def is_logged_in(self, session: PrincipalSession) -> bool:
        return session.is_logged_in

    def logout(self, session: PrincipalSession) -> None:
        """Clear the principal and invalidate every token issued for the user so far."""
        principal = session.current_principal()
        if principal is not None:
            self.db.query(
                update(users)
                .where(users.c.id == bindparam("user_id"))
                .values(session_version=users.c.session_version + 1)
            )
            self.db.bind("user_id", principal.user_id)
            self.db.execute()
            logger.info("User %s logged out", principal.username)
        session.clear()

    def current_user(self, session: PrincipalSession) -> Optional[dict]:
        principal = session.current_principal()
        if principal is None:
            return None
        return self.get_user(principal.user_id, missing_ok=True)

    def has_permission(self, session: PrincipalSession, required_role: Union[Role, str]) -> bool:
        principal = session.current_principal()
        if principal is None:
            return False
        return role_satisfies(principal.role, required_role)

    def require_role(self, session: PrincipalSession, required_role: Union[Role, str]) -> Principal:
        principal = session.current_principal()
        if principal is None:
            raise AuthenticationFailure("Not authenticated")
        if not role_satisfies(principal.role, required_role):
            raise AuthorizationDenied(f"{Role(required_role).value} role required")
        return principal

    def resolve_token_principal(self, user_id: int, session_version: int) -> Optional[Principal]:
        """Principal for a token's subject, or None when the user is gone, inactive or logged out since."""
        user = self.get_user(user_id, missing_ok=True)
        if user is None or not user["is_active"] or user["session_version"] != session_version:
            return None
        return Principal(user_id=user["id"], username=user["username"], role=Role(user["role"]))

    def get_user(self, user_id: int, missing_ok: bool = False) -> Optional[dict]:
        self.db.query(select(*PUBLIC_USER_COLUMNS).where(users.c.id == bindparam("user_id")))
        self.db.bind("user_id", user_id)
        user = self.db.single()
        if user is None and not missing_ok:
            raise NotFound("User not found")
        return user

    def list_users(self) -> list[dict]:
        self.db.query(select(*PUBLIC_USER_COLUMNS).order_by(users.c.username))
        return self.db.result_set()

    def set_active(self, user_id: int, is_active: bool) -> None:
        """Deactivating also bumps session_version so the user's tokens stop working."""
        stmt = update(users).where(users.c.id == bindparam("user_id"))
        if is_active:
            stmt = stmt.values(is_active=True)
        else:
            stmt = stmt.values(is_active=False, session_version=users.c.session_version + 1)
        self.db.query(stmt)
        self.db.bind("user_id", user_id)
        self.db.execute()
        if self.db.row_count() == 0:
            raise NotFound("User not found")
