"""Statement extractor - turns uploaded statement lines into financial aggregates"""

import csv
import logging
import re
from typing import List, Optional

from revbond_gateway.domain.exceptions import NoExtractableDataError
from revbond_gateway.domain.models import (
    CsvSource,
    FinancialAggregates,
    StatementSource,
    TextSource,
)
from revbond_gateway.utils.text_utils import parse_money

logger = logging.getLogger(__name__)

CSV_DELIMITER = ","

# Grouped thousands must be tried first, otherwise "1250.50" would split into "125" and "0.50"
AMOUNT_PATTERN = re.compile(r"-?\d{1,3}(?:,\d{3})+(?:\.\d+)?|-?\d+(?:\.\d+)?")

# A line matching both keyword sets counts every amount as a deposit
DEPOSIT_PATTERN = re.compile(r"deposit|credit|(?<![a-z])cr(?![a-z])")
WITHDRAWAL_PATTERN = re.compile(r"withdraw|debit|(?<![a-z])dr(?![a-z])")


def detect_source(lines: List[str]) -> StatementSource:
    """Tag statement lines as CSV when the header row is delimited, free text otherwise"""
    if lines and CSV_DELIMITER in lines[0]:
        return CsvSource(lines=lines)
    return TextSource(lines=lines)


def _find_column(headers: List[str], keyword: str) -> Optional[int]:
    for idx, header in enumerate(headers):
        if keyword in header:
            return idx
    return None


def _cell(row: List[str], idx: Optional[int]) -> Optional[float]:
    if idx is None or idx >= len(row):
        return None
    return parse_money(row[idx])


def extract_csv(lines: List[str], customer_count: int = 2) -> FinancialAggregates:
    """
    Sum credit/debit columns of a CSV statement.

    Requirements:
    - Header row decides columns: first header containing "credit", "debit", "balance"
    - Only strictly positive credits/debits count, one transaction each
    - Balance is the last parseable value in the balance column (not the max)
    - Unparseable cells are skipped
    """
    rows = list(csv.reader(lines, delimiter=CSV_DELIMITER))
    headers = [h.strip().lower() for h in rows[0]] if rows else []

    credit_idx = _find_column(headers, "credit")
    debit_idx = _find_column(headers, "debit")
    balance_idx = _find_column(headers, "balance")

    total_credits = 0.0
    total_debits = 0.0
    last_balance = 0.0
    tx_count = 0

    for row in rows[1:]:
        credit = _cell(row, credit_idx)
        if credit is not None and credit > 0:
            total_credits += credit
            tx_count += 1

        debit = _cell(row, debit_idx)
        if debit is not None and debit > 0:
            total_debits += debit
            tx_count += 1

        balance = _cell(row, balance_idx)
        if balance is not None:
            last_balance = balance

    logger.debug(
        "Parsed CSV statement",
        extra={
            "credits": total_credits,
            "debits": total_debits,
            "balance": last_balance,
            "transaction_count": tx_count,
        },
    )

    return FinancialAggregates(
        total_deposits=total_credits,
        total_withdrawals=total_debits,
        total_balance=last_balance,
        transaction_count=tx_count,
        customer_count=customer_count,
    )


def extract_text(lines: List[str], customer_count: int = 2) -> FinancialAggregates:
    """
    Keyword-driven extraction for PDF text layers and plain-text statements.

    Every non-zero amount on a deposit line counts as a deposit, otherwise on a
    withdrawal line as a withdrawal. Deposit keywords win when a line has both.
    Lines mentioning "balance" set the balance to their last non-zero amount.
    """
    total_deposits = 0.0
    total_withdrawals = 0.0
    last_balance = 0.0
    tx_count = 0

    for line in lines:
        lower = line.lower()
        amounts = [float(raw.replace(",", "")) for raw in AMOUNT_PATTERN.findall(line)]
        amounts = [abs(a) for a in amounts if a != 0]
        if not amounts:
            continue

        is_deposit = DEPOSIT_PATTERN.search(lower) is not None
        is_withdrawal = WITHDRAWAL_PATTERN.search(lower) is not None

        for amount in amounts:
            if is_deposit:
                total_deposits += amount
                tx_count += 1
            elif is_withdrawal:
                total_withdrawals += amount
                tx_count += 1

        if "balance" in lower:
            last_balance = amounts[-1]

    # No balance line: estimate from net flow
    if last_balance == 0 and total_deposits > 0:
        last_balance = max(0.0, total_deposits - total_withdrawals)

    logger.debug(
        "Parsed text statement",
        extra={
            "deposits": total_deposits,
            "withdrawals": total_withdrawals,
            "balance": last_balance,
            "transaction_count": tx_count,
        },
    )

    return FinancialAggregates(
        total_deposits=total_deposits,
        total_withdrawals=total_withdrawals,
        total_balance=last_balance,
        transaction_count=tx_count,
        customer_count=customer_count,
    )


def extract_aggregates(source: StatementSource, customer_count: int = 2) -> FinancialAggregates:
    """
    Main entry point: dispatch on the source variant and validate the result.

    Raises:
        NoExtractableDataError: When no deposits could be derived
    """
    if not source.lines:
        raise NoExtractableDataError("Statement contains no readable lines")

    if isinstance(source, CsvSource):
        aggregates = extract_csv(source.lines, customer_count)
    else:
        aggregates = extract_text(source.lines, customer_count)

    if not aggregates.total_deposits > 0:
        raise NoExtractableDataError("Could not extract valid revenue data from statement")

    return aggregates
