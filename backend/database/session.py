from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from core.config import Settings
from models.base import Base

# Imported for their side effect of registering tables on Base.metadata.
from models import account, notification, progress, session  # noqa: F401


def create_db_engine(settings: Settings) -> Engine:
    url = settings.database_url
    if not url.startswith("sqlite"):
        return create_engine(url, pool_pre_ping=True, future=True)

    # Writers wait at most busy_timeout for the lock instead of blocking forever.
    connect_args = {"check_same_thread": False, "timeout": settings.database_busy_timeout_sec}
    if url in ("sqlite://", "sqlite:///:memory:"):
        # One shared connection so every session sees the same in-memory database.
        return create_engine(url, connect_args=connect_args, poolclass=StaticPool, future=True)
    return create_engine(url, connect_args=connect_args, future=True)


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine, future=True)


def init_db(engine: Engine) -> None:
    # Create tables. For production, use Alembic migrations.
    Base.metadata.create_all(bind=engine)
