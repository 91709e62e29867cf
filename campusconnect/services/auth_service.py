"""Identity provider: password hashing, bearer tokens, and re-authentication.

Access token payload:
{
    "sub": <userID>,
    "role": <role>,
    "type": "access",
    "iat": <issued_at>,
    "exp": <expires_at>,
}
"""
import logging
from datetime import datetime, timedelta, timezone

import bcrypt
import jwt
from sqlalchemy.orm import Session

from campusconnect.config import settings
from campusconnect.database import commit_or_raise
from campusconnect.errors import AuthenticationError, InputValidationError
from campusconnect.models.user import User, UserRole

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8


def hash_password(plain_password: str) -> str:
    # Bcrypt only looks at the first 72 bytes
    password_bytes = plain_password.encode("utf-8")[:72]
    return bcrypt.hashpw(password_bytes, bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)).decode("utf-8")


def verify_password(plain_password: str, password_hash: str) -> bool:
    if not password_hash:
        return False
    return bcrypt.checkpw(plain_password.encode("utf-8")[:72], password_hash.encode("utf-8"))


def validate_new_password(password: str) -> None:
    if len(password) < MIN_PASSWORD_LENGTH:
        raise InputValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")


def create_access_token(user: User) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user.user_id,
        "role": user.role.value,
        "type": "access",
        "iat": now,
        "exp": now + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
    }
    return jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> str:
    """Return the user ID carried by a valid access token."""
    try:
        payload = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError as exc:
        raise AuthenticationError("Session expired, please sign in again") from exc
    except jwt.PyJWTError as exc:
        raise AuthenticationError("Could not validate credentials") from exc
    if payload.get("type") != "access" or not payload.get("sub"):
        raise AuthenticationError("Could not validate credentials")
    return payload["sub"]


def current_user(db: Session, token: str | None) -> User:
    """Resolve the signed-in user for a bearer token."""
    if not token:
        raise AuthenticationError()
    user_id = decode_access_token(token)
    user = db.query(User).filter(User.user_id == user_id).first()
    if not user:
        raise AuthenticationError("Account no longer exists")
    return user


def authenticate(db: Session, email: str, password: str) -> User:
    user = db.query(User).filter(User.email == email.strip().lower()).first()
    if not user or not verify_password(password, user.password_hash):
        logger.info("Failed sign-in for %s", email)
        raise AuthenticationError("Invalid email or password")
    logger.info("User %s signed in", user.user_id)
    return user


def reauthenticate(user: User, password: str) -> None:
    if not verify_password(password, user.password_hash):
        raise AuthenticationError("Current password is incorrect")


def ensure_bootstrap_admin(db: Session, email: str, password: str, full_name: str) -> User:
    """Create the first SSG admin account if no account uses ``email`` yet."""
    email = email.strip().lower()
    user = db.query(User).filter(User.email == email).first()
    if user:
        return user
    validate_new_password(password)
    user = User(
        email=email,
        full_name=full_name,
        role=UserRole.ssg_admin,
        password_hash=hash_password(password),
    )
    db.add(user)
    commit_or_raise(db, "create the bootstrap admin")
    db.refresh(user)
    logger.info("Bootstrap SSG admin %s created (%s)", user.user_id, email)
    return user


def change_password(db: Session, user: User, current_password: str, new_password: str) -> None:
    """Change a password after re-authenticating with the current one."""
    reauthenticate(user, current_password)
    validate_new_password(new_password)
    user.password_hash = hash_password(new_password)
    commit_or_raise(db, "change the password")
    logger.info("Password changed for user %s", user.user_id)
