"""Stablecoin unit conversion for contract calls"""

from decimal import Decimal, ROUND_DOWN

USDC_DECIMALS = 6


def to_usdc_units(amount: float) -> int:
    """Convert a currency amount to 6-decimal stablecoin base units"""
    scaled = Decimal(str(amount)) * (10 ** USDC_DECIMALS)
    return int(scaled.to_integral_value(rounding=ROUND_DOWN))


def from_usdc_units(units: int) -> float:
    """Convert stablecoin base units back to a currency amount"""
    return units / 10 ** USDC_DECIMALS
