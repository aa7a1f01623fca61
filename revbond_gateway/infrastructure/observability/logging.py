"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict
from pythonjsonlogger import jsonlogger
from revbond_gateway.config import settings


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging"""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    # JSON handler for stdout
    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_analysis(
    request_id: str,
    business_id: str,
    source_kind: str,
    composite_score: float,
    tier: str,
    eligible: bool,
    duration_ms: float,
) -> None:
    """Log structured statement analysis outcome"""
    logging.info(
        "Statement analyzed",
        extra={
            "request_id": request_id,
            "business_id": business_id,
            "step": "analysis_complete",
            "source_kind": source_kind,
            "composite_score": composite_score,
            "tier": tier,
            "eligibility_outcome": "eligible" if eligible else "ineligible",
            "duration_ms": duration_ms,
        },
    )


def log_bond_minted(request_id: str, business_id: str, amount_usd: float, token_address: str) -> None:
    """Log structured bond minting outcome"""
    logging.info(
        "Bond minted",
        extra={
            "request_id": request_id,
            "business_id": business_id,
            "step": "bond_minted",
            "amount_usd": amount_usd,
            "token_address": token_address,
        },
    )
