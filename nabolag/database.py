from dotenv import load_dotenv
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session

from nabolag.config import get_settings

# Load .env file (DATABASE_URL lives there)
load_dotenv()

DATABASE_URL = get_settings().DATABASE_URL

_engine_kwargs = {}
if DATABASE_URL.startswith("sqlite"):
    # SQLite sessions are handed across FastAPI's threadpool
    _engine_kwargs["connect_args"] = {"check_same_thread": False}

# SQLAlchemy engine & session factory
engine = create_engine(
    DATABASE_URL,
    future=True,
    echo=False,  # set True if you want to see SQL in terminal
    **_engine_kwargs,
)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
    future=True,
)

Base = declarative_base()


def init_db() -> None:
    """
    Import models and create tables if they don't exist.
    Alembic is the real migration tool, but this keeps local dev sane.
    """
    from nabolag import models  # noqa: F401

    Base.metadata.create_all(bind=engine)


def get_db():
    """
    FastAPI dependency that gives you a DB session and cleans it up after.
    """
    db: Session = SessionLocal()
    try:
        yield db
    finally:
        db.close()
