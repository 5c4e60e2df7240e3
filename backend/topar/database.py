"""
Database configuration and session management
"""

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from .config import Settings
from .models.base import Base
# Import all models to ensure they're registered with SQLAlchemy
from .models import user, listing, deal, favorite  # noqa: F401


def build_engine(settings: Settings) -> Engine:
    """
    Create the SQLAlchemy engine for the configured database
    """
    url = settings.sqlalchemy_url
    echo = settings.log_verbosity == "full"

    if url.startswith("sqlite"):
        return create_engine(
            url,
            echo=echo,
            connect_args={"check_same_thread": False, "timeout": 30},
        )

    # For Cloud SQL, if host starts with /cloudsql/, use it as the Unix socket directory
    if settings.db_host and settings.db_host.startswith('/cloudsql/'):
        unix_socket_path = '/cloudsql/' + settings.db_host.split('/cloudsql/')[1]
        return create_engine(
            url,
            echo=echo,
            pool_pre_ping=True,
            pool_recycle=300,
            connect_args={
                "host": unix_socket_path
            }
        )

    return create_engine(
        url,
        echo=echo,
        pool_pre_ping=True,
        pool_recycle=300,
    )


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(engine: Engine) -> None:
    """Create all tables that do not exist yet"""
    Base.metadata.create_all(bind=engine)


def get_db(request: Request):
    """
    Database dependency for FastAPI routes
    """
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()
