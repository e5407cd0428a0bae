from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel, EmailStr
from sqlmodel import Session

from fieldbook.database import get_session
from fieldbook.dependencies import get_auth_session, get_current_user, get_session_store
from fieldbook.models.user import User, UserRole
from fieldbook.services.session_store import AuthError, AuthSession, SessionStore
from fieldbook.utils.validation import validate_name, validate_phone

router = APIRouter()


class RegisterRequest(BaseModel):
    first_name: str
    last_name: str
    email: EmailStr
    password: str
    confirm_password: str
    phone: Optional[str] = None
    role: UserRole = UserRole.PLAYER


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class UserResponse(BaseModel):
    id: int
    first_name: str
    last_name: str
    email: str
    phone: Optional[str]
    role: UserRole
    registered_at: datetime

    class Config:
        from_attributes = True


class SessionResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_at: datetime
    user: UserResponse


class ProfileUpdate(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None


def _session_response(session: Session, auth_session: AuthSession) -> SessionResponse:
    user = session.get(User, auth_session.user_id)
    return SessionResponse(
        access_token=auth_session.token,
        expires_at=auth_session.expires_at,
        user=UserResponse.model_validate(user),
    )


@router.post("/auth/register", response_model=SessionResponse, status_code=201)
def register(
    data: RegisterRequest,
    session: Session = Depends(get_session),
    store: SessionStore = Depends(get_session_store),
):
    """Create an account (auth + profile) and sign it in"""
    try:
        auth_session = store.sign_up(session, **data.model_dump())
    except AuthError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return _session_response(session, auth_session)


@router.post("/auth/login", response_model=SessionResponse)
def login(
    data: LoginRequest,
    session: Session = Depends(get_session),
    store: SessionStore = Depends(get_session_store),
):
    try:
        auth_session = store.sign_in_with_password(session, data.email, data.password)
    except AuthError as e:
        raise HTTPException(status_code=401, detail=str(e))
    return _session_response(session, auth_session)


@router.post("/auth/refresh", response_model=SessionResponse)
def refresh(
    auth_session: AuthSession = Depends(get_auth_session),
    session: Session = Depends(get_session),
    store: SessionStore = Depends(get_session_store),
):
    renewed = store.refresh(auth_session.token)
    if renewed is None:
        raise HTTPException(status_code=401, detail="Session expired")
    return _session_response(session, renewed)


@router.post("/auth/logout", status_code=204)
def logout(
    auth_session: AuthSession = Depends(get_auth_session),
    store: SessionStore = Depends(get_session_store),
):
    store.sign_out(auth_session.token)
    return Response(status_code=204)


@router.get("/auth/me", response_model=UserResponse)
def me(user: User = Depends(get_current_user)):
    return user


@router.put("/auth/me", response_model=UserResponse)
def update_profile(
    data: ProfileUpdate,
    user: User = Depends(get_current_user),
    auth_session: AuthSession = Depends(get_auth_session),
    session: Session = Depends(get_session),
    store: SessionStore = Depends(get_session_store),
):
    """Edit the caller's profile; validated before anything is written"""
    updates = data.model_dump(exclude_unset=True)

    checks = []
    if "first_name" in updates:
        checks.append(validate_name(updates["first_name"] or "", "first name"))
    if "last_name" in updates:
        checks.append(validate_name(updates["last_name"] or "", "last name"))
    if "phone" in updates:
        checks.append(validate_phone(updates["phone"]))
    for result in checks:
        if not result.is_valid:
            raise HTTPException(status_code=422, detail=result.error)

    for field, value in updates.items():
        setattr(user, field, value.strip() if isinstance(value, str) else value)
    user.updated_at = datetime.utcnow()
    session.add(user)
    session.commit()
    session.refresh(user)

    store.user_updated(auth_session.token)
    return user
