"""SQLAlchemy ORM models for analyses, bonds and the KYC queue"""

import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, BigInteger, Boolean, Float, DateTime, Integer, ForeignKey, Text, JSON
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StatementAnalysisRecord(Base):
    """Scored bank statement upload"""

    __tablename__ = "statement_analysis"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    business_id = Column(Text, nullable=False, index=True)
    file_name = Column(Text, nullable=True)
    source_kind = Column(Text, nullable=False)
    total_deposits = Column(Float, nullable=False)
    total_withdrawals = Column(Float, nullable=False)
    total_balance = Column(Float, nullable=False)
    transaction_count = Column(Integer, nullable=False)
    customer_count = Column(Integer, nullable=False)
    composite_score = Column(Float, nullable=False)
    tier = Column(Text, nullable=False)
    apy = Column(Text, nullable=False)
    max_loan = Column(BigInteger, nullable=False)
    metrics = Column(JSON, nullable=False)
    eligible = Column(Boolean, nullable=False)
    rejection_reasons = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    bonds = relationship("BondIssuance", back_populates="analysis", cascade="all, delete-orphan")


class BondIssuance(Base):
    """Bond minted through the bond factory"""

    __tablename__ = "bond_issuance"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    analysis_id = Column(UUID(as_uuid=True), ForeignKey("statement_analysis.id", ondelete="CASCADE"), nullable=False)
    business_id = Column(Text, nullable=False, index=True)
    amount_usd = Column(Float, nullable=False)
    token_address = Column(Text, nullable=False)
    vault_address = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    analysis = relationship("StatementAnalysisRecord", back_populates="bonds")


class KYCSubmissionRecord(Base):
    """Business verification request in the admin review queue"""

    __tablename__ = "kyc_submission"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    business_id = Column(Text, nullable=False, index=True)
    business_name = Column(Text, nullable=False)
    registration_number = Column(Text, nullable=False)
    country = Column(Text, nullable=False)
    registration_type = Column(Text, nullable=False)
    status = Column(Text, nullable=False, default="pending", index=True)
    rejection_reason = Column(Text, nullable=True)
    submitted_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=func.now())
