"""Pydantic schemas for API request/response validation"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import List, Optional
from revbond_gateway.domain.models import ScoreResult

WALLET_ADDRESS_PATTERN = r"^0x[0-9a-fA-F]{40}$"


class AggregatesSchema(BaseModel):
    """Totals extracted from a statement"""

    total_deposits: float
    total_withdrawals: float
    total_balance: float
    transaction_count: int
    customer_count: int
    monthly_revenue: int


class MetricsSchema(BaseModel):
    """Whole-number metrics submitted with a bond"""

    g: int
    r: int
    c: int
    s: int


class ScoreSchema(BaseModel):
    composite_score: float
    tier: str
    apy: str
    max_loan: int
    metrics: MetricsSchema


class ReasonSchema(BaseModel):
    code: str
    message: str


class EligibilitySchema(BaseModel):
    eligible: bool
    reasons: List[ReasonSchema]


class AnalysisResponse(BaseModel):
    """Response for POST /v1/statements/analyze"""

    analysis_id: str
    business_id: str
    source_kind: str
    aggregates: AggregatesSchema
    score: ScoreSchema
    eligibility: EligibilitySchema
    growth_rate: float
    oracle_update_scheduled: bool


class HistoryItem(BaseModel):
    """Single analysis in history"""

    analysis_id: str
    file_name: Optional[str] = None
    composite_score: float
    tier: str
    max_loan: int
    eligible: bool
    created_at: str


class HistoryResponse(BaseModel):
    """Response for GET /v1/statements/history"""

    business_id: str
    analyses: List[HistoryItem]


class OracleScoreResponse(BaseModel):
    """Response for GET /v1/oracle/{business_id}/score"""

    business_id: str
    mrr: float
    customers: int
    score: ScoreSchema


class BondRequest(BaseModel):
    """Request body for POST /v1/bonds"""

    business_id: str = Field(..., pattern=WALLET_ADDRESS_PATTERN, description="Business wallet address")
    amount_usd: Optional[float] = Field(None, gt=0, description="Principal to raise; defaults to the standard bond size")


class BondResponse(BaseModel):
    """Response for POST /v1/bonds"""

    bond_id: str
    business_id: str
    analysis_id: str
    amount_usd: float
    tier: str
    apy: str
    token_address: str
    vault_address: str


class BondListing(BaseModel):
    """Single bond in the marketplace, tiered from its business's oracle record"""

    bond_id: str
    business_id: str
    amount_usd: float
    token_address: str
    vault_address: str
    created_at: str
    verified_mrr: Optional[float] = None
    oracle_score: Optional[float] = None
    oracle_tier: Optional[str] = None
    oracle_apy: Optional[str] = None


class BondListResponse(BaseModel):
    """Response for GET /v1/bonds"""

    bonds: List[BondListing]


class VaultStatusResponse(BaseModel):
    """Response for GET /v1/bonds/{bond_id}/vault"""

    bond_id: str
    vault_address: str
    total_raised: float
    total_withdrawn: float
    available: float
    kyc_verified: bool


class WithdrawalResponse(BaseModel):
    bond_id: str
    vault_address: str
    amount_withdrawn: float


class KYCSubmissionRequest(BaseModel):
    """Request body for POST /v1/kyc/submissions"""

    business_id: str = Field(..., pattern=WALLET_ADDRESS_PATTERN)
    business_name: str = Field(..., min_length=1)
    registration_number: str = Field(..., min_length=1)
    country: str = "Nigeria"
    registration_type: Optional[str] = Field(None, description="Defaults to the country's registry identifier")


class KYCRejectRequest(BaseModel):
    reason: str = Field(..., min_length=1)


class KYCSubmissionResponse(BaseModel):
    id: str
    business_id: str
    business_name: str
    registration_number: str
    country: str
    registration_type: str
    status: str
    rejection_reason: Optional[str] = None
    submitted_at: Optional[datetime] = None


class KYCSubmissionList(BaseModel):
    submissions: List[KYCSubmissionResponse]


def score_to_schema(score: ScoreResult) -> ScoreSchema:
    g, r, c, s = score.metric_units()
    return ScoreSchema(
        composite_score=score.composite_score,
        tier=score.tier,
        apy=score.apy,
        max_loan=score.max_loan,
        metrics=MetricsSchema(g=g, r=r, c=c, s=s),
    )
