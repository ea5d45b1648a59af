"""
models.py

SQLAlchemy ORM models for the Vesper history store.
Holds one row per finished conversation with its short and detailed
summary. Transcripts themselves are not stored here.
Part of Vesper — Local-First Personal Assistant.
"""

from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, String, Text, create_engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

import config

Base = declarative_base()


class ConversationSummary(Base):
    """
    A persisted summary of one conversation.
    Read by the history-summary provider for recap questions.
    """

    __tablename__ = "conversation_summaries"

    id = Column(Integer, primary_key=True, autoincrement=True)
    conversation_id = Column(String, nullable=False, index=True)
    short_summary = Column(String, nullable=False, default="")
    detailed_summary = Column(Text, nullable=False, default="")
    created_at = Column(DateTime, nullable=False, default=datetime.now, index=True)


_engines: dict = {}


def get_engine(database_url: str | None = None):
    """
    Return a cached SQLAlchemy engine for a database URL.

    Args:
        database_url: SQLAlchemy URL. Defaults to config.DATABASE_URL.

    Returns:
        The Engine instance.
    """
    url = database_url or config.DATABASE_URL
    engine = _engines.get(url)
    if engine is None:
        engine = create_engine(url, future=True)
        _engines[url] = engine
    return engine


def get_session(database_url: str | None = None) -> Session:
    """
    Open a new ORM session. Callers must close it.

    Example:
        db = get_session()
        try:
            ...
        finally:
            db.close()
    """
    factory = sessionmaker(bind=get_engine(database_url), expire_on_commit=False)
    return factory()


def create_all_tables(database_url: str | None = None) -> None:
    """Create every table that does not exist yet."""
    Base.metadata.create_all(get_engine(database_url))
