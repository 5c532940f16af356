from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from bizledger.core.database import Database, get_db
from bizledger.core.errors import AuthenticationFailure
from bizledger.core.roles import Role
from bizledger.core.security import decode_token
from bizledger.core.session import Principal, PrincipalSession
from bizledger.services.auth_service import AuthService


def get_database(db: Session = Depends(get_db)) -> Database:
    return Database(db)


def get_bearer_token(authorization: Optional[str] = Header(None)) -> Optional[str]:
    if not authorization or not authorization.startswith("Bearer "):
        return None
    return authorization.split(" ", 1)[1]


def get_principal_session(
    db: Database = Depends(get_database),
    token: Optional[str] = Depends(get_bearer_token),
) -> PrincipalSession:
    """Request-scoped session; empty when the token is missing, invalid or revoked."""
    session = PrincipalSession()
    if token is None:
        return session

    payload = decode_token(token)
    if not payload or payload.get("type") != "access":
        return session
    try:
        user_id = int(payload["sub"])
        version = int(payload.get("ver", -1))
    except (KeyError, TypeError, ValueError):
        return session

    principal = AuthService(db).resolve_token_principal(user_id, version)
    if principal is not None:
        session.set_principal(principal)
    return session


def get_current_principal(session: PrincipalSession = Depends(get_principal_session)) -> Principal:
    principal = session.current_principal()
    if principal is None:
        raise AuthenticationFailure("Not authenticated")
    return principal


def require_role(role: Role):
    def dependency(
        session: PrincipalSession = Depends(get_principal_session),
        db: Database = Depends(get_database),
    ) -> Principal:
        return AuthService(db).require_role(session, role)

    return dependency


require_employee = require_role(Role.employee)
require_manager = require_role(Role.manager)
require_admin = require_role(Role.admin)
