"""Bond endpoints - mint, marketplace listing, vault status and withdrawal"""

import logging
from typing import Dict, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from revbond_gateway.api.v1.schemas import (
    BondListing,
    BondListResponse,
    BondRequest,
    BondResponse,
    VaultStatusResponse,
    WithdrawalResponse,
)
from revbond_gateway.api.dependencies import (
    get_bond_client,
    get_kyc_client,
    get_oracle_client,
    get_request_id,
    get_vault_client,
)
from revbond_gateway.config import settings
from revbond_gateway.infrastructure.database.session import get_db
from revbond_gateway.infrastructure.database.repositories import AnalysisRepository, BondRepository
from revbond_gateway.infrastructure.clients.bonds import BondFactoryClient
from revbond_gateway.infrastructure.clients.kyc import KYCRegistryClient
from revbond_gateway.infrastructure.clients.oracle import RevenueOracleClient
from revbond_gateway.infrastructure.clients.vaults import EscrowVaultClient
from revbond_gateway.domain.bonds import check_withdrawal, resolve_bond_amount
from revbond_gateway.domain.models import OracleSnapshot
from revbond_gateway.domain.scoring import score_oracle_snapshot
from revbond_gateway.domain.exceptions import (
    BondAmountError,
    BusinessNotVerifiedError,
    ChainRelayError,
    NothingToWithdrawError,
)
from revbond_gateway.infrastructure.observability.metrics import bond_counter, withdrawal_counter
from revbond_gateway.infrastructure.observability.logging import log_bond_minted

router = APIRouter()


@router.post("/bonds", response_model=BondResponse)
async def mint_bond(
    request_body: BondRequest,
    request: Request,
    db: Session = Depends(get_db),
    oracle_client: RevenueOracleClient = Depends(get_oracle_client),
    bond_client: BondFactoryClient = Depends(get_bond_client),
):
    """
    Mint a bond from the business's most recent statement analysis.

    Flow:
    1. Load latest analysis and re-check its eligibility
    2. Size principal: standard amount capped at max loan, or the requested amount
    3. Confirm the oracle has a verified record
    4. Call the bond factory with the analysis metrics
    5. Persist the issuance
    """
    request_id = get_request_id(request)
    business_id = request_body.business_id

    analysis = AnalysisRepository(db).get_latest_for_business(business_id)
    if analysis is None:
        raise HTTPException(status_code=409, detail="No statement analysis on record; upload a statement first")

    if not analysis.eligible:
        raise HTTPException(
            status_code=422,
            detail={"code": "ineligible_profile", "reasons": analysis.rejection_reasons or []},
        )

    try:
        amount_usd = resolve_bond_amount(
            request_body.amount_usd,
            analysis.max_loan,
            settings.default_bond_amount_usd,
        )
    except BondAmountError as e:
        raise HTTPException(status_code=422, detail=str(e))

    try:
        snapshot = await oracle_client.get(business_id)
        if not snapshot.verified:
            raise HTTPException(status_code=409, detail="Business is not verified on-chain; re-verify revenue")

        metrics = analysis.metrics
        receipt = await bond_client.create(
            business_id,
            amount_usd,
            (metrics["g"], metrics["r"], metrics["c"], metrics["s"]),
        )

        db_bond = BondRepository(db).create_bond(
            analysis_id=analysis.id,
            business_id=business_id,
            amount_usd=amount_usd,
            receipt=receipt,
        )
        db.commit()

    except ChainRelayError as e:
        db.rollback()
        logging.error(f"Chain relay error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=503, detail="Chain relay unavailable")

    bond_counter.labels(tier=analysis.tier).inc()
    log_bond_minted(request_id, business_id, amount_usd, receipt.token_address)

    return BondResponse(
        bond_id=str(db_bond.id),
        business_id=business_id,
        analysis_id=str(analysis.id),
        amount_usd=amount_usd,
        tier=analysis.tier,
        apy=analysis.apy,
        token_address=receipt.token_address,
        vault_address=receipt.vault_address,
    )


@router.get("/bonds", response_model=BondListResponse)
async def list_bonds(
    business_id: Optional[str] = Query(None, description="Only bonds of this business"),
    db: Session = Depends(get_db),
    oracle_client: RevenueOracleClient = Depends(get_oracle_client),
):
    """
    Marketplace view of minted bonds.

    Each bond is tiered from its business's current oracle record (tiers A-D),
    so the listing reflects verified revenue rather than the statement upload.
    Businesses without a verified record are listed without a tier.
    """
    bonds = BondRepository(db).list_bonds(business_id)

    snapshots: Dict[str, OracleSnapshot] = {}
    try:
        for bond in bonds:
            if bond.business_id not in snapshots:
                snapshots[bond.business_id] = await oracle_client.get(bond.business_id)
    except ChainRelayError as e:
        logging.error(f"Chain relay error: {e}")
        raise HTTPException(status_code=503, detail="Chain relay unavailable")

    listings = []
    for bond in bonds:
        listing = BondListing(
            bond_id=str(bond.id),
            business_id=bond.business_id,
            amount_usd=bond.amount_usd,
            token_address=bond.token_address,
            vault_address=bond.vault_address,
            created_at=bond.created_at.isoformat(),
        )
        snapshot = snapshots[bond.business_id]
        if snapshot.verified:
            score = score_oracle_snapshot(snapshot)
            listing.verified_mrr = snapshot.mrr
            listing.oracle_score = score.composite_score
            listing.oracle_tier = score.tier
            listing.oracle_apy = score.apy
        listings.append(listing)

    return BondListResponse(bonds=listings)


@router.get("/bonds/{bond_id}/vault", response_model=VaultStatusResponse)
async def get_vault_status(
    bond_id: str,
    db: Session = Depends(get_db),
    vault_client: EscrowVaultClient = Depends(get_vault_client),
    kyc_client: KYCRegistryClient = Depends(get_kyc_client),
):
    """Raised, withdrawn and available escrow funds plus the business's KYC flag"""
    bond = BondRepository(db).get_bond(bond_id)
    if bond is None:
        raise HTTPException(status_code=404, detail=f"Bond {bond_id} not found")

    try:
        status = await vault_client.status(bond.vault_address)
        kyc_verified = await kyc_client.is_verified(bond.business_id)
    except ChainRelayError as e:
        logging.error(f"Chain relay error: {e}", extra={"bond_id": bond_id})
        raise HTTPException(status_code=503, detail="Chain relay unavailable")

    return VaultStatusResponse(
        bond_id=bond_id,
        vault_address=bond.vault_address,
        total_raised=status.total_raised,
        total_withdrawn=status.total_withdrawn,
        available=status.available,
        kyc_verified=kyc_verified,
    )


@router.post("/bonds/{bond_id}/withdraw", response_model=WithdrawalResponse)
async def withdraw_from_vault(
    bond_id: str,
    request: Request,
    db: Session = Depends(get_db),
    vault_client: EscrowVaultClient = Depends(get_vault_client),
    kyc_client: KYCRegistryClient = Depends(get_kyc_client),
):
    """
    Release raised funds to the business.

    Requires available funds and a KYC-verified business.
    """
    request_id = get_request_id(request)
    bond = BondRepository(db).get_bond(bond_id)
    if bond is None:
        raise HTTPException(status_code=404, detail=f"Bond {bond_id} not found")

    try:
        status = await vault_client.status(bond.vault_address)
        kyc_verified = await kyc_client.is_verified(bond.business_id)
        check_withdrawal(status, kyc_verified)
        amount = await vault_client.withdraw(bond.vault_address)

    except NothingToWithdrawError as e:
        withdrawal_counter.labels(outcome="blocked").inc()
        raise HTTPException(status_code=409, detail=str(e))
    except BusinessNotVerifiedError as e:
        withdrawal_counter.labels(outcome="blocked").inc()
        raise HTTPException(status_code=403, detail={"code": "kyc_required", "message": str(e)})
    except ChainRelayError as e:
        logging.error(f"Chain relay error: {e}", extra={"request_id": request_id, "bond_id": bond_id})
        raise HTTPException(status_code=503, detail="Chain relay unavailable")

    withdrawal_counter.labels(outcome="released").inc()
    logging.info(
        "Vault withdrawal",
        extra={
            "request_id": request_id,
            "business_id": bond.business_id,
            "step": "vault_withdrawn",
            "amount_usd": amount,
        },
    )

    return WithdrawalResponse(bond_id=bond_id, vault_address=bond.vault_address, amount_withdrawn=amount)
