from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel, create_engine
from sqlmodel.pool import StaticPool
import pytest
from leadflow.main import app
from leadflow.database import get_session
from leadflow.auth.service import create_access_token
from leadflow.users.models import User, UserRole
from leadflow.users.service import get_password_hash

# bcrypt is slow on purpose; every fixture user shares one hash of "pass"
PASSWORD_HASH = get_password_hash("pass")

@pytest.fixture(name="session")
def session_fixture():
    engine = create_engine(
        "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
    )
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        yield session

@pytest.fixture(name="client")
def client_fixture(session: Session):
    def get_session_override():
        return session
    app.dependency_overrides[get_session] = get_session_override
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()

def make_user(session: Session, email: str, role: UserRole, name: str = None, approved: bool = True) -> User:
    user = User(
        email=email,
        name=name or email.split("@")[0],
        role=role,
        is_approved=approved,
        hashed_password=PASSWORD_HASH,
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    return user

def auth_headers(user: User) -> dict:
    token = create_access_token(data={"sub": user.email, "user_id": str(user.id)})
    return {"Authorization": f"Bearer {token}"}

@pytest.fixture(name="admin")
def admin_fixture(session: Session) -> User:
    return make_user(session, "admin@example.com", UserRole.ADMIN, "Ada Admin")

@pytest.fixture(name="sales")
def sales_fixture(session: Session) -> User:
    return make_user(session, "sam@example.com", UserRole.SALES, "Sam Sales")

@pytest.fixture(name="other_sales")
def other_sales_fixture(session: Session) -> User:
    return make_user(session, "olive@example.com", UserRole.SALES, "Olive Other")

@pytest.fixture(name="designer")
def designer_fixture(session: Session) -> User:
    return make_user(session, "dana@example.com", UserRole.DESIGNER, "Dana Designer")
