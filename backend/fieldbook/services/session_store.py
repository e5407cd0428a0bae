"""
Authentication sessions.

SessionStore owns every signed-in session of the process. It is created once
at startup, stored on ``app.state`` and handed to routes through a dependency;
nothing reaches it through a module global. Interested parties (audit logging,
tests) subscribe to auth events and get back an unsubscribe callable.

Passwords are hashed with bcrypt; session tokens are opaque random strings
that expire after SESSION_TTL_MINUTES.
"""

import logging
import os
import secrets
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, Dict, List, Optional

import bcrypt
from sqlmodel import Session, select

from fieldbook.models.user import User, UserRole
from fieldbook.utils.validation import validate_login_form, validate_register_form

logger = logging.getLogger(__name__)

BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))
SESSION_TTL_MINUTES = int(os.getenv("SESSION_TTL_MINUTES", str(60 * 24 * 7)))


class AuthEvent(str, Enum):
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"
    USER_UPDATED = "USER_UPDATED"


class AuthError(Exception):
    """Raised for rejected credentials or invalid registration data."""


@dataclass
class AuthSession:
    token: str
    user_id: int
    role: UserRole
    expires_at: datetime

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return (now or datetime.utcnow()) >= self.expires_at


Listener = Callable[[AuthEvent, Optional[AuthSession]], None]


def hash_password(password: str, rounds: int = BCRYPT_ROUNDS) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


class SessionStore:
    def __init__(self, ttl_minutes: int = SESSION_TTL_MINUTES, bcrypt_rounds: int = BCRYPT_ROUNDS):
        self.ttl = timedelta(minutes=ttl_minutes)
        self.bcrypt_rounds = bcrypt_rounds
        self._sessions: Dict[str, AuthSession] = {}
        self._listeners: List[Listener] = []
        self._lock = threading.Lock()

    # -- subscriptions -------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, event: AuthEvent, session: Optional[AuthSession]) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(event, session)
            except Exception:
                logger.exception("Auth listener failed on %s", event.value)

    # -- sessions ------------------------------------------------------------

    def active_count(self) -> int:
        """Sessions currently held, expired ones not yet swept included."""
        with self._lock:
            return len(self._sessions)

    def _sweep_expired(self, now: datetime) -> None:
        # Caller holds self._lock
        expired = [token for token, s in self._sessions.items() if s.is_expired(now)]
        for token in expired:
            del self._sessions[token]
        if expired:
            logger.debug("Evicted %d expired sessions", len(expired))

    def _open(self, user: User) -> AuthSession:
        auth_session = AuthSession(
            token=secrets.token_urlsafe(32),
            user_id=user.id,
            role=user.role,
            expires_at=datetime.utcnow() + self.ttl,
        )
        with self._lock:
            self._sweep_expired(datetime.utcnow())
            self._sessions[auth_session.token] = auth_session
        self._notify(AuthEvent.SIGNED_IN, auth_session)
        return auth_session

    def sign_up(
        self,
        db: Session,
        *,
        first_name: str,
        last_name: str,
        email: str,
        password: str,
        confirm_password: str,
        phone: Optional[str] = None,
        role: UserRole = UserRole.PLAYER,
    ) -> AuthSession:
        """Create the user profile and sign it in."""
        result = validate_register_form(first_name, last_name, email, password, confirm_password, phone)
        if not result.is_valid:
            raise AuthError(result.error)

        email = email.strip().lower()
        if db.exec(select(User).where(User.email == email)).first():
            raise AuthError("An account with this email already exists")

        user = User(
            first_name=first_name.strip(),
            last_name=last_name.strip(),
            email=email,
            phone=phone.strip() if phone else None,
            role=role,
            password_hash=hash_password(password, self.bcrypt_rounds),
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        logger.info("Registered user %s (%s)", user.id, user.role.value)
        return self._open(user)

    def sign_in_with_password(self, db: Session, email: str, password: str) -> AuthSession:
        result = validate_login_form(email, password)
        if not result.is_valid:
            raise AuthError(result.error)

        user = db.exec(select(User).where(User.email == email.strip().lower())).first()
        if not user or not verify_password(password, user.password_hash):
            raise AuthError("Invalid email or password")
        return self._open(user)

    def get_session(self, token: Optional[str]) -> Optional[AuthSession]:
        if not token:
            return None
        with self._lock:
            auth_session = self._sessions.get(token)
            if auth_session and auth_session.is_expired():
                del self._sessions[token]
                auth_session = None
        return auth_session

    def refresh(self, token: str) -> Optional[AuthSession]:
        """Swap ``token`` for a fresh one with a renewed expiry."""
        current = self.get_session(token)
        if current is None:
            return None
        renewed = AuthSession(
            token=secrets.token_urlsafe(32),
            user_id=current.user_id,
            role=current.role,
            expires_at=datetime.utcnow() + self.ttl,
        )
        with self._lock:
            self._sessions.pop(token, None)
            self._sweep_expired(datetime.utcnow())
            self._sessions[renewed.token] = renewed
        self._notify(AuthEvent.TOKEN_REFRESHED, renewed)
        return renewed

    def sign_out(self, token: str) -> bool:
        with self._lock:
            auth_session = self._sessions.pop(token, None)
        if auth_session is None:
            return False
        self._notify(AuthEvent.SIGNED_OUT, auth_session)
        return True

    def user_updated(self, token: str) -> None:
        self._notify(AuthEvent.USER_UPDATED, self.get_session(token))
