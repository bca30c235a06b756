# funnels/db/engine.py
import logging

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from funnels import conf
from funnels.db.models import Base

logger = logging.getLogger(__name__)

# Cache the engine to avoid recreating it
_engine: Engine | None = None
_session_factory: sessionmaker | None = None


def create_db_engine(db_url: str) -> Engine:
    """Create an engine for db_url and make sure all tables exist."""
    connect_args = {}
    kwargs = {}
    if db_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
        if db_url in ("sqlite://", "sqlite:///:memory:"):
            # In-memory databases live per connection; share a single one
            kwargs["poolclass"] = StaticPool

    engine = create_engine(db_url, connect_args=connect_args, **kwargs)
    Base.metadata.create_all(bind=engine, checkfirst=True)
    logger.debug("Funnels DB schema ready → %s", engine.url.render_as_string(hide_password=True))
    return engine


def get_engine() -> Engine:
    """Get SQLAlchemy engine for the funnels database."""
    global _engine
    if _engine is None:
        _engine = create_db_engine(conf.DATABASE_URL)
    return _engine


def get_session() -> Session:
    """Get a new session bound to the funnels database."""
    global _session_factory
    if _session_factory is None:
        _session_factory = sessionmaker(bind=get_engine(), expire_on_commit=False)
    return _session_factory()
