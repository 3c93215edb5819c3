"""SQLAlchemy ORM models for the incident history database."""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""
    pass


class IncidentRecord(Base):
    """One analyzed incident. Rows are inserted once and never updated."""

    __tablename__ = "incidents"

    id = Column(String(36), primary_key=True)
    created_at = Column(
        DateTime, default=lambda: datetime.now(timezone.utc), nullable=False, index=True,
    )
    model = Column(String(256), nullable=True)
    error_code = Column(Integer, nullable=False, default=0)
    error_message = Column(Text, nullable=False)
    fault_domain = Column(String(32), nullable=False)
    severity = Column(String(16), nullable=False)
    report = Column(Text, nullable=False)

    def __repr__(self) -> str:
        return f"<IncidentRecord id={self.id} code={self.error_code} fault_domain={self.fault_domain}>"
