from typing import Optional

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlmodel import Session

from fieldbook.database import get_session
from fieldbook.models.complex import Complex
from fieldbook.models.user import User, UserRole
from fieldbook.services.session_store import AuthSession, SessionStore

bearer_scheme = HTTPBearer(auto_error=False)


def get_session_store(request: Request) -> SessionStore:
    """SessionStore created on startup (see main.on_startup)"""
    return request.app.state.session_store


def get_auth_session(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    store: SessionStore = Depends(get_session_store),
) -> AuthSession:
    auth_session = store.get_session(credentials.credentials if credentials else None)
    if auth_session is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return auth_session


def get_current_user(
    auth_session: AuthSession = Depends(get_auth_session),
    session: Session = Depends(get_session),
) -> User:
    user = session.get(User, auth_session.user_id)
    if not user:
        raise HTTPException(status_code=401, detail="User no longer exists")
    return user


def require_facility_admin(user: User = Depends(get_current_user)) -> User:
    if user.role != UserRole.FACILITY_ADMIN:
        raise HTTPException(status_code=403, detail="Facility admin role required")
    return user


def get_owned_complex(session: Session, complex_id: int, user: User) -> Complex:
    """Load a complex the user owns: 404 if missing, 403 if someone else's"""
    complex_ = session.get(Complex, complex_id)
    if not complex_:
        raise HTTPException(status_code=404, detail="Complex not found")
    if complex_.owner_id != user.id:
        raise HTTPException(status_code=403, detail="You do not manage this complex")
    return complex_
