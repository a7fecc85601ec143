from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import jwt
from sqlmodel import Session
from leadflow.users.models import User
from leadflow.users.service import get_user_by_email, verify_password
from leadflow.config import settings

# Configuration
ALGORITHM = settings.ALGORITHM
ACCESS_TOKEN_EXPIRE_MINUTES = settings.ACCESS_TOKEN_EXPIRE_MINUTES
SECRET_KEY = settings.SECRET_KEY

def authenticate_user(session: Session, email: str, password: str) -> Optional[User]:
    user = get_user_by_email(session, email)
    if not user:
        return None
    if not verify_password(password, user.hashed_password):
        return None
    return user

def account_block_reason(user: User) -> Optional[str]:
    """Why an authenticated user may not use the API, or None if they may."""
    if not user.is_active:
        return "Account deactivated"
    if not user.is_approved:
        return "Account pending approval"
    return None

def create_access_token(data: dict) -> str:
    to_encode = data.copy()

    expire = datetime.now(timezone.utc) + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)
    return encoded_jwt
