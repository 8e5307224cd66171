import logging
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import SQLModel, create_engine, Session

from quizdesk.config import DATABASE_URL, SQL_ECHO
from quizdesk.errors import StoreUnavailableError

logger = logging.getLogger(__name__)

connect_args = {}
if DATABASE_URL.startswith("sqlite"):
    connect_args = {"check_same_thread": False}

engine = create_engine(DATABASE_URL, echo=SQL_ECHO, connect_args=connect_args)


def init_db():
    # registers the tables on SQLModel.metadata
    import quizdesk.models  # noqa: F401

    SQLModel.metadata.create_all(engine)


def get_session():
    return Session(engine, expire_on_commit=False)


@contextmanager
def session_scope():
    """Yield a session; any database failure surfaces as StoreUnavailableError."""
    try:
        with get_session() as session:
            yield session
    except SQLAlchemyError as e:
        logger.error(f"Database operation failed: {e}")
        raise StoreUnavailableError("The data store is unavailable. Please try again.") from e
