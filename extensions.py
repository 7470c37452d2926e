"""
SQLAlchemy 2.x engine and session management for the travel record store.
"""

import logging
import os

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import config
from models import Base

logger = logging.getLogger(__name__)


def build_engine(url: str) -> Engine:
    """
    Engine for `url`. In-memory SQLite gets a single shared connection so
    every session (and every thread) sees the same database.
    """
    if url.startswith("sqlite"):
        if url in ("sqlite://", "sqlite:///:memory:"):
            return create_engine(
                url,
                echo=False,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        db_path = url.replace("sqlite:///", "", 1)
        if os.path.dirname(db_path):
            os.makedirs(os.path.dirname(db_path), exist_ok=True)
        return create_engine(url, echo=False, connect_args={"check_same_thread": False})
    return create_engine(url, echo=False, pool_pre_ping=True)


def build_session_factory(bind: Engine) -> sessionmaker:
    # expire_on_commit=False: records are handed to the scheduler after commit
    return sessionmaker(bind=bind, autocommit=False, autoflush=False, expire_on_commit=False)


# Create engine with SQLAlchemy 2.0 style
engine = build_engine(config.DATABASE_URL)

# Session factory
SessionLocal = build_session_factory(engine)


def init_db(bind: Engine = None):
    """Initialize the database by creating all tables."""
    Base.metadata.create_all(bind=bind or engine)
    logger.info("Travel record store initialized (%s)", (bind or engine).url)

