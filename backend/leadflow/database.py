import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import SQLModel, create_engine, Session

from leadflow.config import settings
from leadflow.exceptions import CRMError, PersistenceError

logger = logging.getLogger(__name__)

# The URL comes from settings so deployments only change DATABASE_URL.
connect_args = {"check_same_thread": False} if "sqlite" in settings.DATABASE_URL else {}
engine = create_engine(settings.DATABASE_URL, echo=settings.SQL_ECHO, connect_args=connect_args)

def create_db_and_tables():
    SQLModel.metadata.create_all(engine)

def get_session():
    with Session(engine) as session:
        yield session

def commit(session: Session, on_conflict: Optional[CRMError] = None) -> None:
    """Commit the session, turning storage failures into domain errors.

    A constraint violation raises ``on_conflict`` when given; everything else
    becomes a PersistenceError. The session is rolled back either way.
    """
    try:
        session.commit()
    except IntegrityError as exc:
        session.rollback()
        if on_conflict is not None:
            raise on_conflict from exc
        logger.exception("Commit violated a constraint")
        raise PersistenceError(str(exc)) from exc
    except SQLAlchemyError as exc:
        session.rollback()
        logger.exception("Commit failed")
        raise PersistenceError(str(exc)) from exc
