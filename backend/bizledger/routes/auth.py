from typing import List

from fastapi import APIRouter, Depends, HTTPException

from bizledger.core.database import Database
from bizledger.core.deps import get_database, get_current_principal, get_principal_session, require_admin
from bizledger.core.errors import AuthenticationFailure
from bizledger.core.security import create_access_token
from bizledger.core.session import Principal, PrincipalSession
from bizledger.schemas import LoginRequest, MessageResponse, TokenResponse, UserActiveUpdate, UserCreate, UserOut
from bizledger.services.auth_service import AuthService


router = APIRouter()


@router.post("/login", response_model=TokenResponse)
def login(data: LoginRequest, db: Database = Depends(get_database)):
    auth = AuthService(db)
    session = PrincipalSession()
    if not auth.login(session, data.username, data.password):
        raise AuthenticationFailure("Invalid credentials")

    principal = session.current_principal()
    user = auth.get_user(principal.user_id)
    access = create_access_token(principal, user["session_version"])
    return TokenResponse(access_token=access, username=principal.username, role=principal.role)


@router.post("/logout", response_model=MessageResponse)
def logout(
    session: PrincipalSession = Depends(get_principal_session),
    db: Database = Depends(get_database),
    principal: Principal = Depends(get_current_principal),
):
    AuthService(db).logout(session)
    return MessageResponse(message="Logged out")


@router.get("/me", response_model=UserOut)
def me(
    session: PrincipalSession = Depends(get_principal_session),
    db: Database = Depends(get_database),
    principal: Principal = Depends(get_current_principal),
):
    return AuthService(db).current_user(session)


@router.post("/register", response_model=UserOut, dependencies=[Depends(require_admin)])
def register(data: UserCreate, db: Database = Depends(get_database)):
    auth = AuthService(db)
    user_id = auth.register(data)
    return auth.get_user(user_id)


@router.get("/users", response_model=List[UserOut], dependencies=[Depends(require_admin)])
def list_users(db: Database = Depends(get_database)):
    return AuthService(db).list_users()


@router.patch("/users/{user_id}/active", response_model=UserOut)
def set_user_active(
    user_id: int,
    data: UserActiveUpdate,
    db: Database = Depends(get_database),
    principal: Principal = Depends(require_admin),
):
    if user_id == principal.user_id and not data.is_active:
        raise HTTPException(status_code=400, detail="Cannot deactivate your own account")
    auth = AuthService(db)
    auth.set_active(user_id, data.is_active)
    return auth.get_user(user_id)
