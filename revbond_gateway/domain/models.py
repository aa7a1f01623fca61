"""Domain models - pure Python dataclasses representing business entities"""

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Union


@dataclass(frozen=True)
class CsvSource:
    """Statement lines with a delimited header row"""

    lines: List[str]
    kind: str = field(default="csv", init=False)


@dataclass(frozen=True)
class TextSource:
    """Free-text statement lines (PDF text layer or plain text)"""

    lines: List[str]
    kind: str = field(default="text", init=False)


StatementSource = Union[CsvSource, TextSource]


@dataclass
class FinancialAggregates:
    """Totals extracted from one statement"""

    total_deposits: float
    total_withdrawals: float
    total_balance: float
    transaction_count: int
    customer_count: int = 2

    @property
    def net_flow(self) -> float:
        return self.total_deposits - self.total_withdrawals

    @property
    def monthly_revenue(self) -> int:
        """MRR proxy: whole currency units of total deposits"""
        if not math.isfinite(self.total_deposits):
            return 0
        return math.floor(self.total_deposits)


@dataclass
class ScoreResult:
    """Output of the stability scorer"""

    growth_metric: float
    revenue_metric: float
    concentration_metric: float
    stability_metric: float
    composite_score: float
    tier: str  # "A" | "B" | "C" | "D"
    apy: str
    max_loan: int

    def metric_units(self) -> tuple[int, int, int, int]:
        """Whole-number metrics as submitted to the bond factory"""
        return (
            math.floor(self.growth_metric),
            math.floor(self.revenue_metric),
            math.floor(self.concentration_metric),
            math.floor(self.stability_metric),
        )


@dataclass
class IneligibilityReason:
    """One failed eligibility criterion"""

    code: str
    message: str


@dataclass
class EligibilityResult:
    """Outcome of the bond-minting eligibility gate"""

    eligible: bool
    reasons: List[IneligibilityReason] = field(default_factory=list)


@dataclass
class StatementAnalysis:
    """Complete result of analyzing one uploaded statement"""

    source_kind: str
    aggregates: FinancialAggregates
    score: ScoreResult
    eligibility: EligibilityResult
    growth_rate: float  # net flow as a percentage of ending balance


@dataclass
class OracleSnapshot:
    """Revenue oracle record for a business"""

    mrr: float
    customers: int
    churn: int
    updated_at: int
    verified: bool


@dataclass
class BondReceipt:
    """Addresses returned by the bond factory"""

    token_address: str
    vault_address: str


@dataclass
class KYCSubmission:
    """Business verification request awaiting admin review"""

    business_id: str
    business_name: str
    registration_number: str
    country: str
    registration_type: str
    status: str = "pending"  # "pending" | "approved" | "rejected"
    rejection_reason: Optional[str] = None
    submitted_at: Optional[datetime] = None
    id: Optional[str] = None


@dataclass
class VaultStatus:
    """Escrow vault balances for one bond"""

    vault_address: str
    total_raised: float
    total_withdrawn: float

    @property
    def available(self) -> float:
        return max(0.0, self.total_raised - self.total_withdrawn)
