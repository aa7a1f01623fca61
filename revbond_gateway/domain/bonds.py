"""Bond issuance rules - principal sizing and escrow withdrawal gate"""

from typing import Optional

from revbond_gateway.domain.exceptions import (
    BondAmountError,
    BusinessNotVerifiedError,
    NothingToWithdrawError,
)
from revbond_gateway.domain.models import VaultStatus


def resolve_bond_amount(requested: Optional[float], max_loan: int, default_amount: float) -> float:
    """
    Pick the principal for a new bond.

    Requirements:
    - No requested amount: the standard bond size, lowered to max_loan when it is smaller
    - Explicit amount: used as-is, rejected when above max_loan

    Raises:
        BondAmountError: Explicit amount exceeds max_loan
    """
    if requested is None:
        return float(min(default_amount, max_loan))

    if requested > max_loan:
        raise BondAmountError(f"Requested amount exceeds maximum loan of ${max_loan:,}")
    return float(requested)


def check_withdrawal(status: VaultStatus, kyc_verified: bool) -> float:
    """
    Gate releasing escrowed funds to the business.

    Returns:
        Amount that will be released

    Raises:
        NothingToWithdrawError: Nothing raised beyond earlier withdrawals
        BusinessNotVerifiedError: Business has not completed KYC
    """
    if status.available <= 0:
        raise NothingToWithdrawError("No funds available to withdraw")
    if not kyc_verified:
        raise BusinessNotVerifiedError("Complete business verification to withdraw funds")
    return status.available
