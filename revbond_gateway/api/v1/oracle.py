"""GET /v1/oracle/{business_id}/score - Score a business from its oracle record"""

import logging
from fastapi import APIRouter, Depends, HTTPException, Path

from revbond_gateway.api.v1.schemas import OracleScoreResponse, WALLET_ADDRESS_PATTERN, score_to_schema
from revbond_gateway.api.dependencies import get_oracle_client
from revbond_gateway.infrastructure.clients.oracle import RevenueOracleClient
from revbond_gateway.domain.scoring import score_oracle_snapshot
from revbond_gateway.domain.exceptions import ChainRelayError

router = APIRouter()


@router.get("/oracle/{business_id}/score", response_model=OracleScoreResponse)
async def get_oracle_score(
    business_id: str = Path(..., pattern=WALLET_ADDRESS_PATTERN),
    oracle_client: RevenueOracleClient = Depends(get_oracle_client),
):
    """
    Tier a business from on-chain revenue data (MRR and customer count).

    Uses the oracle scoring table (tiers A-D), not the statement table.
    """
    try:
        snapshot = await oracle_client.get(business_id)
    except ChainRelayError as e:
        logging.error(f"Chain relay error: {e}", extra={"business_id": business_id})
        raise HTTPException(status_code=503, detail="Chain relay unavailable")

    if not snapshot.verified:
        raise HTTPException(status_code=404, detail="No verified oracle record for business")

    return OracleScoreResponse(
        business_id=business_id,
        mrr=snapshot.mrr,
        customers=snapshot.customers,
        score=score_to_schema(score_oracle_snapshot(snapshot)),
    )
