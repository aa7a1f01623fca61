"""Dependency injection for FastAPI endpoints"""

from fastapi import Depends, Request
from sqlalchemy.orm import Session
from revbond_gateway.infrastructure.clients.bonds import BondFactoryClient
from revbond_gateway.infrastructure.clients.kyc import KYCRegistryClient
from revbond_gateway.infrastructure.clients.oracle import RevenueOracleClient
from revbond_gateway.infrastructure.clients.vaults import EscrowVaultClient
from revbond_gateway.infrastructure.database.repositories import KYCSubmissionRepository
from revbond_gateway.infrastructure.database.session import get_db


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_oracle_client() -> RevenueOracleClient:
    """Provide revenue oracle client instance"""
    return RevenueOracleClient()


def get_bond_client() -> BondFactoryClient:
    """Provide bond factory client instance"""
    return BondFactoryClient()


def get_kyc_client() -> KYCRegistryClient:
    """Provide KYC registry client instance"""
    return KYCRegistryClient()


def get_vault_client() -> EscrowVaultClient:
    """Provide escrow vault client instance"""
    return EscrowVaultClient()


def get_submission_repository(db: Session = Depends(get_db)) -> KYCSubmissionRepository:
    """Provide the KYC review queue"""
    return KYCSubmissionRepository(db)
