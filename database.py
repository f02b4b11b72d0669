from typing import List, Optional

from sqlalchemy import create_engine, Column, Integer, String, DateTime, Text
from sqlalchemy.orm import declarative_base, sessionmaker
from datetime import datetime
from config import settings

engine = create_engine(settings.DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()

# Database Models
class OperationAttempt(Base):
    __tablename__ = "operation_attempts"

    id = Column(Integer, primary_key=True, index=True)
    operation = Column(String(50), nullable=False)  # activate, refresh, connect, disconnect, sync
    slot = Column(String(20), nullable=False)  # license, connection

    # Attempt Result
    result = Column(String(20), nullable=False)  # success, failed, rejected, discarded
    category = Column(String(20))  # validation, transport, domain
    error_message = Column(Text)

    attempted_at = Column(DateTime, default=datetime.utcnow, index=True)

# Create tables
Base.metadata.create_all(bind=engine)

class AttemptLog:
    """
    Diagnostics trail of orchestration operations.
    Never receives credentials or license keys.
    """

    def __init__(self, session_factory=SessionLocal):
        self.session_factory = session_factory

    def record(self, operation: str, slot: str, result: str,
               category: Optional[str] = None, error_message: Optional[str] = None):
        db = self.session_factory()
        try:
            db.add(OperationAttempt(
                operation=operation,
                slot=slot,
                result=result,
                category=category,
                error_message=error_message
            ))
            db.commit()
        finally:
            db.close()

    def recent(self, limit: int = 50) -> List[OperationAttempt]:
        db = self.session_factory()
        try:
            return (
                db.query(OperationAttempt)
                .order_by(OperationAttempt.attempted_at.desc(), OperationAttempt.id.desc())
                .limit(limit)
                .all()
            )
        finally:
            db.close()
