"""Prometheus metrics for monitoring statement scoring, bond minting and relay calls"""

from prometheus_client import Counter, Histogram

# Analysis metrics
analysis_counter = Counter(
    "revbond_statement_analysis_total",
    "Total statement analyses completed",
    ["outcome"],  # eligible | ineligible
)

tier_counter = Counter(
    "revbond_statement_tier_total",
    "Statement analyses by risk tier",
    ["tier"],
)

extraction_failure_counter = Counter(
    "revbond_extraction_failures_total",
    "Uploads with no extractable revenue data",
    ["reason"],  # no_extractable_data | unreadable_document
)

bond_counter = Counter(
    "revbond_bonds_minted_total",
    "Bonds minted through the bond factory",
    ["tier"],
)

withdrawal_counter = Counter(
    "revbond_vault_withdrawals_total",
    "Vault withdrawal requests",
    ["outcome"],  # released | blocked
)

# Chain relay metrics
relay_latency_histogram = Histogram(
    "chain_relay_latency_seconds",
    "Chain relay response time",
    ["operation"],
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

relay_failure_counter = Counter(
    "chain_relay_failures_total",
    "Failed chain relay calls",
    ["operation"],
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_analysis(eligible: bool, tier: str) -> None:
    """Record analysis metrics for monitoring eligibility rates and tier distribution"""
    outcome = "eligible" if eligible else "ineligible"
    analysis_counter.labels(outcome=outcome).inc()
    tier_counter.labels(tier=tier).inc()
