import logging

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from notes_manager.api.config import get_settings
from notes_manager.db.models import Base

logger = logging.getLogger(__name__)

DATABASE_URL = get_settings().database_url

# SQLite connections are shared with FastAPI's threadpool workers
connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(DATABASE_URL, echo=False, future=True, connect_args=connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


# PUBLIC_INTERFACE
def init_db(bind=None) -> None:
    """Create the users and notes tables if they do not exist yet."""
    bind = bind or engine
    logger.info("Ensuring database schema on %s", bind.url.render_as_string(hide_password=True))
    Base.metadata.create_all(bind=bind)


# PUBLIC_INTERFACE
def get_db():
    """
    Yields a SQLAlchemy session for use in dependency injection.
    Closes the session after use.
    Example usage (FastAPI):
        def endpoint(db: Session = Depends(get_db)):
            ...
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
