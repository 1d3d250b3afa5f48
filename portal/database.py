import logging
from typing import Any, Dict, Iterator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from portal.core.config import settings

logger = logging.getLogger(__name__)


def engine_options(database_url: str) -> Dict[str, Any]:
    """SQLite connections are shared across FastAPI's threadpool; server databases get liveness checks."""
    if database_url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True}


engine = create_engine(settings.database_url, **engine_options(settings.database_url))

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db() -> Iterator[Session]:
    # Routers and services commit explicitly; batch assignment commits per item
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db() -> None:
    """Creates any missing portal tables. Existing tables are left as they are."""
    import portal.models  # noqa: F401  (registers every table on Base.metadata)
    Base.metadata.create_all(bind=engine)
    logger.info(f"Database schema ready ({len(Base.metadata.tables)} tables)")
