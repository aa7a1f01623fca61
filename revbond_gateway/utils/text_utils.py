"""Text and amount helpers shared by ingestion and extraction"""

import math
import re
from typing import List, Optional

_CURRENCY_NOISE = re.compile(r"[$₦#£€\s,]")


def split_lines(text: str) -> List[str]:
    """Split document text into lines, dropping blank ones"""
    return [line for line in text.splitlines() if line.strip()]


def parse_money(value: str) -> Optional[float]:
    """
    Parse a currency-formatted cell such as "$1,250.50".

    Returns None when the cell is empty or not a finite number.
    """
    cleaned = _CURRENCY_NOISE.sub("", value)
    if not cleaned:
        return None
    try:
        amount = float(cleaned)
    except ValueError:
        return None
    return amount if math.isfinite(amount) else None
