"""Data access layer for statement analyses, bonds and KYC submissions"""

import uuid
from typing import List, Optional
from sqlalchemy.orm import Session
from revbond_gateway.infrastructure.database.models import (
    BondIssuance,
    KYCSubmissionRecord,
    StatementAnalysisRecord,
)
from revbond_gateway.domain.exceptions import SubmissionNotFoundError
from revbond_gateway.domain.models import BondReceipt, KYCSubmission, StatementAnalysis


def _parse_uuid(value: str) -> Optional[uuid.UUID]:
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


class AnalysisRepository:
    """Repository for statement analyses"""

    def __init__(self, db: Session):
        self.db = db

    def create_analysis(
        self,
        business_id: str,
        analysis: StatementAnalysis,
        file_name: Optional[str] = None,
    ) -> StatementAnalysisRecord:
        """Persist a scored statement"""
        aggregates = analysis.aggregates
        score = analysis.score
        g, r, c, s = score.metric_units()
        db_analysis = StatementAnalysisRecord(
            business_id=business_id,
            file_name=file_name,
            source_kind=analysis.source_kind,
            total_deposits=aggregates.total_deposits,
            total_withdrawals=aggregates.total_withdrawals,
            total_balance=aggregates.total_balance,
            transaction_count=aggregates.transaction_count,
            customer_count=aggregates.customer_count,
            composite_score=score.composite_score,
            tier=score.tier,
            apy=score.apy,
            max_loan=score.max_loan,
            metrics={"g": g, "r": r, "c": c, "s": s},
            eligible=analysis.eligibility.eligible,
            rejection_reasons=[
                {"code": reason.code, "message": reason.message}
                for reason in analysis.eligibility.reasons
            ],
        )
        self.db.add(db_analysis)
        self.db.flush()  # Get ID without committing
        return db_analysis

    def get_latest_for_business(self, business_id: str) -> Optional[StatementAnalysisRecord]:
        """Most recent analysis; a new upload supersedes earlier ones"""
        return (
            self.db.query(StatementAnalysisRecord)
            .filter(StatementAnalysisRecord.business_id == business_id)
            .order_by(StatementAnalysisRecord.created_at.desc())
            .first()
        )

    def get_analyses_by_business(self, business_id: str, limit: int = 10) -> List[StatementAnalysisRecord]:
        """Fetch recent analyses for a business"""
        return (
            self.db.query(StatementAnalysisRecord)
            .filter(StatementAnalysisRecord.business_id == business_id)
            .order_by(StatementAnalysisRecord.created_at.desc())
            .limit(limit)
            .all()
        )


class BondRepository:
    """Repository for minted bonds"""

    def __init__(self, db: Session):
        self.db = db

    def create_bond(
        self,
        analysis_id: uuid.UUID,
        business_id: str,
        amount_usd: float,
        receipt: BondReceipt,
    ) -> BondIssuance:
        db_bond = BondIssuance(
            analysis_id=analysis_id,
            business_id=business_id,
            amount_usd=amount_usd,
            token_address=receipt.token_address,
            vault_address=receipt.vault_address,
        )
        self.db.add(db_bond)
        self.db.flush()
        return db_bond

    def get_bond(self, bond_id: str) -> Optional[BondIssuance]:
        record_id = _parse_uuid(bond_id)
        if record_id is None:
            return None
        return self.db.query(BondIssuance).filter(BondIssuance.id == record_id).first()

    def list_bonds(self, business_id: Optional[str] = None, limit: int = 50) -> List[BondIssuance]:
        """Newest bonds first, optionally for a single business"""
        query = self.db.query(BondIssuance)
        if business_id is not None:
            query = query.filter(BondIssuance.business_id == business_id)
        return query.order_by(BondIssuance.created_at.desc()).limit(limit).all()


class KYCSubmissionRepository:
    """SQL-backed KYC review queue (list / get / append / update)"""

    def __init__(self, db: Session):
        self.db = db

    @staticmethod
    def _to_domain(record: KYCSubmissionRecord) -> KYCSubmission:
        return KYCSubmission(
            id=str(record.id),
            business_id=record.business_id,
            business_name=record.business_name,
            registration_number=record.registration_number,
            country=record.country,
            registration_type=record.registration_type,
            status=record.status,
            rejection_reason=record.rejection_reason,
            submitted_at=record.submitted_at,
        )

    def _get_record(self, submission_id: str) -> Optional[KYCSubmissionRecord]:
        record_id = _parse_uuid(submission_id)
        if record_id is None:
            return None
        return self.db.query(KYCSubmissionRecord).filter(KYCSubmissionRecord.id == record_id).first()

    def list(self, status: Optional[str] = None) -> List[KYCSubmission]:
        query = self.db.query(KYCSubmissionRecord)
        if status is not None:
            query = query.filter(KYCSubmissionRecord.status == status)
        records = query.order_by(KYCSubmissionRecord.submitted_at.asc()).all()
        return [self._to_domain(r) for r in records]

    def get(self, submission_id: str) -> Optional[KYCSubmission]:
        record = self._get_record(submission_id)
        return self._to_domain(record) if record else None

    def append(self, submission: KYCSubmission) -> KYCSubmission:
        record = KYCSubmissionRecord(
            business_id=submission.business_id,
            business_name=submission.business_name,
            registration_number=submission.registration_number,
            country=submission.country,
            registration_type=submission.registration_type,
            status=submission.status,
            rejection_reason=submission.rejection_reason,
        )
        self.db.add(record)
        self.db.flush()
        self.db.refresh(record)
        return self._to_domain(record)

    def update(self, submission_id: str, **changes) -> KYCSubmission:
        record = self._get_record(submission_id)
        if record is None:
            raise SubmissionNotFoundError(f"Submission {submission_id} not found")

        for key, value in changes.items():
            setattr(record, key, value)
        self.db.flush()
        return self._to_domain(record)
