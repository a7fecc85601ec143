import logging
from typing import Optional, List
from datetime import datetime, timezone
from sqlmodel import Session, select
from passlib.context import CryptContext
import uuid

from leadflow.database import commit
from leadflow.exceptions import NotFoundError, ValidationError
from leadflow.users.models import User, UserRole
from leadflow.users.schemas import UserCreate, UserUpdate, UserApproval

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)

def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)

def create_user(session: Session, user_create: UserCreate) -> User:
    hashed_password = get_password_hash(user_create.password)
    user_data = user_create.model_dump(exclude={"password"})
    user_data["email"] = user_data["email"].lower()
    db_user = User(
        **user_data,
        hashed_password=hashed_password,
        role=UserRole.CLIENT,
        is_approved=False,
    )
    session.add(db_user)
    commit(session)
    session.refresh(db_user)
    logger.info("Registered user %s with role %s", db_user.id, db_user.role.value)
    return db_user

def get_user(session: Session, user_id: uuid.UUID) -> Optional[User]:
    return session.get(User, user_id)

def get_user_by_email(session: Session, email: str) -> Optional[User]:
    return session.exec(select(User).where(User.email == email.lower())).first()

def get_all_users(
    session: Session,
    offset: int = 0,
    limit: int = 100,
    role: Optional[UserRole] = None
) -> List[User]:
    query = select(User)
    if role:
        query = query.where(User.role == role)
    return session.exec(query.order_by(User.created_at).offset(offset).limit(limit)).all()

def require_active_sales_person(session: Session, user_id: uuid.UUID, field: str = "sales_person_id") -> User:
    """Resolve a lead or target owner; only active, approved sales users can own either."""
    user = session.get(User, user_id)
    if not user or user.role != UserRole.SALES or not user.is_active or not user.is_approved:
        raise ValidationError(field, "must reference an active, approved sales user")
    return user

def update_user(session: Session, db_user: User, user_update: UserUpdate) -> User:
    update_data = user_update.model_dump(exclude_unset=True)

    if "password" in update_data and update_data["password"]:
        update_data["hashed_password"] = get_password_hash(update_data.pop("password"))
    update_data.pop("password", None)

    for key, value in update_data.items():
        setattr(db_user, key, value)
    db_user.updated_at = datetime.now(timezone.utc)

    session.add(db_user)
    commit(session)
    session.refresh(db_user)
    return db_user

def set_approval(session: Session, user_id: uuid.UUID, approval: UserApproval) -> User:
    db_user = session.get(User, user_id)
    if not db_user:
        raise NotFoundError("User")

    db_user.is_approved = approval.is_approved
    if approval.role is not None:
        db_user.role = approval.role
    db_user.updated_at = datetime.now(timezone.utc)

    session.add(db_user)
    commit(session)
    session.refresh(db_user)
    logger.info("User %s approval=%s role=%s", db_user.id, db_user.is_approved, db_user.role.value)
    return db_user

def set_active(session: Session, user_id: uuid.UUID, is_active: bool) -> User:
    db_user = session.get(User, user_id)
    if not db_user:
        raise NotFoundError("User")

    db_user.is_active = is_active
    db_user.updated_at = datetime.now(timezone.utc)
    session.add(db_user)
    commit(session)
    session.refresh(db_user)
    logger.info("User %s active=%s", db_user.id, db_user.is_active)
    return db_user
