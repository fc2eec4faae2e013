# models/verification.py

from sqlalchemy import Column, Integer, String, DateTime, Index
from datetime import datetime, timezone
from app.db.base import Base

class VerificationCode(Base):
    __tablename__ = "verification_codes"
    __table_args__ = (Index("ix_verification_codes_subject_purpose", "subject", "purpose"),)

    id = Column(Integer, primary_key=True, index=True)
    subject = Column(String(255), nullable=False)  # email address or account
    purpose = Column(String(30), nullable=False)
    code_hash = Column(String(255), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    attempts = Column(Integer, nullable=False, default=0)
    max_attempts = Column(Integer, nullable=False)
    consumed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
