"""Stability scoring engine - core business logic for bond eligibility"""

import math
from decimal import Decimal, ROUND_HALF_UP
from typing import List

from revbond_gateway.domain.extraction import extract_aggregates
from revbond_gateway.domain.models import (
    EligibilityResult,
    FinancialAggregates,
    IneligibilityReason,
    OracleSnapshot,
    ScoreResult,
    StatementAnalysis,
    StatementSource,
)

METRIC_SCALE = 10_000

# Statement uploads only ever produce A-C
STATEMENT_TIER_APY = {"A": "12%", "B": "15%", "C": "18%"}

# Oracle records use a four-tier table with lower yields
ORACLE_TIER_APY = {"A": "8%", "B": "10%", "C": "12%", "D": "15%"}


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(value, high))


def _finite(value: float) -> float:
    """Replace NaN/inf/None with 0 so every metric stays defined"""
    if value is None or not math.isfinite(value):
        return 0.0
    return float(value)


def _round_half_up(value: float, places: int = 2) -> float:
    """Round halves away from zero (0.625 -> 0.63)"""
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(value).quantize(quantum, rounding=ROUND_HALF_UP))


def _is_malformed(aggregates: FinancialAggregates) -> bool:
    values = (
        aggregates.total_deposits,
        aggregates.total_withdrawals,
        aggregates.total_balance,
        aggregates.transaction_count,
    )
    return any(v is None or not math.isfinite(v) for v in values)


def assign_tier(score: float) -> str:
    """Map composite score to statement tier (strict thresholds, no D)"""
    if score > 0.8:
        return "A"
    elif score > 0.6:
        return "B"
    else:
        return "C"


def score_aggregates(aggregates: FinancialAggregates) -> ScoreResult:
    """
    Calculate stability metrics and loan terms from statement aggregates.

    Metrics (each 0-10000):
    - growth: net flow share of deposits
    - revenue: 1 - withdrawals/deposits
    - concentration: ending balance relative to deposits
    - stability: 100 points per counted transaction

    Composite score is their mean scaled to 0-1, rounded half up to 2 decimals.
    Zero deposits are treated as 1 in every denominator. Malformed
    (non-finite) aggregates score 0 in tier C; never raises.
    """
    if _is_malformed(aggregates):
        return ScoreResult(
            growth_metric=0.0,
            revenue_metric=0.0,
            concentration_metric=0.0,
            stability_metric=0.0,
            composite_score=0.0,
            tier="C",
            apy=STATEMENT_TIER_APY["C"],
            max_loan=0,
        )

    deposits = float(aggregates.total_deposits)
    withdrawals = float(aggregates.total_withdrawals)
    balance = float(aggregates.total_balance)
    tx_count = aggregates.transaction_count

    denominator = deposits or 1.0
    net_flow = deposits - withdrawals

    growth = _clamp(net_flow / denominator, 0.0, 1.0) * METRIC_SCALE
    revenue = _clamp(1 - withdrawals / denominator, 0.0, 1.0) * METRIC_SCALE
    concentration = _clamp(balance / denominator, 0.0, 1.0) * METRIC_SCALE
    stability = _clamp(tx_count * 100, 0.0, METRIC_SCALE)

    composite = _round_half_up((growth + revenue + concentration + stability) / (4 * METRIC_SCALE))
    tier = assign_tier(composite)

    return ScoreResult(
        growth_metric=growth,
        revenue_metric=revenue,
        concentration_metric=concentration,
        stability_metric=stability,
        composite_score=composite,
        tier=tier,
        apy=STATEMENT_TIER_APY[tier],
        max_loan=math.floor(max(deposits, 0.0) * 3),
    )


def check_eligibility(
    aggregates: FinancialAggregates,
    score: ScoreResult,
    min_score: float = 0.4,
    min_balance: float = 1000.0,
    min_monthly_revenue: int = 500,
    min_max_loan: int = 1000,
) -> EligibilityResult:
    """
    Gate bond minting on the scored statement.

    Every failed criterion is reported so callers can show all of them at once.
    """
    deposits = _finite(aggregates.total_deposits)
    balance = _finite(aggregates.total_balance)
    reasons: List[IneligibilityReason] = []

    if score.composite_score < min_score:
        reasons.append(
            IneligibilityReason("score_too_low", f"Stability score too low ({score.composite_score:.2f})")
        )
    if balance <= min_balance:
        reasons.append(
            IneligibilityReason("balance_too_low", f"Ending balance must exceed ${min_balance:,.0f}")
        )
    if aggregates.monthly_revenue < min_monthly_revenue:
        reasons.append(
            IneligibilityReason(
                "revenue_too_low", f"Monthly revenue too low (${aggregates.monthly_revenue:,})"
            )
        )
    if deposits <= 0:
        reasons.append(IneligibilityReason("no_deposits", "No significant deposits detected"))
    if score.max_loan < min_max_loan:
        reasons.append(
            IneligibilityReason("max_loan_too_low", f"Maximum loan below ${min_max_loan:,}")
        )

    return EligibilityResult(eligible=not reasons, reasons=reasons)


def growth_rate(aggregates: FinancialAggregates) -> float:
    """Net flow as a percentage of ending balance, for display"""
    balance = _finite(aggregates.total_balance)
    net_flow = _finite(aggregates.total_deposits) - _finite(aggregates.total_withdrawals)
    return _round_half_up(net_flow / (balance or 1.0) * 100, 1)


def analyze_statement(
    source: StatementSource,
    customer_count: int = 2,
    **eligibility_thresholds,
) -> StatementAnalysis:
    """
    Main entry point: extract, score and gate one statement.

    Raises:
        NoExtractableDataError: Scoring is skipped when no deposits were found
    """
    aggregates = extract_aggregates(source, customer_count)
    score = score_aggregates(aggregates)
    eligibility = check_eligibility(aggregates, score, **eligibility_thresholds)

    return StatementAnalysis(
        source_kind=source.kind,
        aggregates=aggregates,
        score=score,
        eligibility=eligibility,
        growth_rate=growth_rate(aggregates),
    )


def assign_oracle_tier(score: float) -> str:
    """Map oracle-derived score to tier (inclusive thresholds, D below 0.4)"""
    if score >= 0.8:
        return "A"
    elif score >= 0.6:
        return "B"
    elif score >= 0.4:
        return "C"
    else:
        return "D"


def score_oracle_snapshot(snapshot: OracleSnapshot) -> ScoreResult:
    """
    Score a business from its on-chain oracle record.

    score = min(0.99, customers * 10 / 1000 + mrr / 100000); every metric is
    the score scaled to 0-10000. Max loan is 3x MRR.
    """
    mrr = _finite(snapshot.mrr)
    customers = _finite(snapshot.customers)

    score = _round_half_up(min(0.99, (customers * 10) / 1000 + mrr / 100_000))
    tier = assign_oracle_tier(score)
    metric = float(math.floor(score * METRIC_SCALE))

    return ScoreResult(
        growth_metric=metric,
        revenue_metric=metric,
        concentration_metric=metric,
        stability_metric=metric,
        composite_score=score,
        tier=tier,
        apy=ORACLE_TIER_APY[tier],
        max_loan=math.floor(max(mrr, 0.0) * 3),
    )
