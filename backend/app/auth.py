"""Admin accounts and bearer-token authentication."""

import logging
from datetime import datetime, timedelta, timezone

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from app.config import get_settings
from app.database import get_db
from app.errors import AuthError, ConflictError
from app.models import Admin

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
security = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


def create_access_token(admin_id: int) -> str:
    settings = get_settings()
    expire = datetime.now(timezone.utc) + timedelta(days=settings.jwt_expire_days)
    payload = {"sub": str(admin_id), "exp": expire}
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> int:
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
        return int(payload["sub"])
    except (JWTError, KeyError, ValueError) as exc:
        raise AuthError(f"Invalid authentication credentials: {exc}") from exc


def create_admin(session: Session, email: str, name: str, password: str) -> Admin:
    email = email.strip().lower()
    if session.query(Admin.id).filter_by(email=email).first():
        raise ConflictError("An admin with this email already exists")
    admin = Admin(email=email, name=name.strip(), password_hash=hash_password(password))
    session.add(admin)
    session.commit()
    session.refresh(admin)
    logger.info("Created admin #%s", admin.id)
    return admin


def authenticate(session: Session, email: str, password: str) -> Admin:
    admin = session.query(Admin).filter_by(email=email.strip().lower()).first()
    if not admin or not verify_password(password, admin.password_hash):
        raise AuthError("Invalid email or password")
    return admin


def require_admin(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> Admin:
    """FastAPI dependency guarding admin routes."""
    if credentials is None:
        raise AuthError("Authentication required")
    admin = db.get(Admin, decode_access_token(credentials.credentials))
    if admin is None:
        raise AuthError("Admin not found")
    return admin
