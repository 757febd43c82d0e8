from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from .logger import get_logger

Base = declarative_base()

logger = get_logger(__name__)

DEFAULT_RECRUITER_NAME = "ATS Recruiter"
DEFAULT_RECRUITER_EMAIL = "recruiter@ats.com"


def build_engine(database_url: str) -> Engine:
    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in database_url or database_url in ("sqlite://", "sqlite:///"):
            # one shared connection, otherwise every session sees an empty database
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, **kwargs)
    return create_engine(database_url, pool_pre_ping=True)


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(engine: Engine, recruiter_id: int = 1) -> None:
    from . import models  # noqa: F401
    Base.metadata.create_all(bind=engine)
    seed_default_recruiter(engine, recruiter_id)


def seed_default_recruiter(engine: Engine, recruiter_id: int) -> None:
    """Candidates are attributed to a fixed recruiter until there is an auth system."""
    from .models import Recruiter

    with Session(engine) as db:
        if db.get(Recruiter, recruiter_id) is not None:
            return
        db.add(Recruiter(id=recruiter_id, name=DEFAULT_RECRUITER_NAME, email=DEFAULT_RECRUITER_EMAIL))
        db.commit()
        logger.info(f"Seeded default recruiter {recruiter_id} <{DEFAULT_RECRUITER_EMAIL}>")
