"""SQLAlchemy models for bizledger database."""

from datetime import datetime, UTC
from sqlalchemy import Column, Integer, String, Text, DateTime, create_engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session

Base = declarative_base()


class Snapshot(Base):
    """Whole-ledger snapshot stored as JSON text."""

    __tablename__ = "snapshots"

    id = Column(Integer, primary_key=True)
    name = Column(String, unique=True, nullable=False)
    document = Column(Text, nullable=False)
    saved_at = Column(
        DateTime,
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )


def create_session_factory(database_url: str) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory."""
    engine = create_engine(database_url, echo=False)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine)
