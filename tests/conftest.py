"""Pytest fixtures for testing"""

import pytest
import httpx
from typing import Generator
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from revbond_gateway.api.main import create_app
from revbond_gateway.api.dependencies import get_bond_client, get_kyc_client, get_oracle_client, get_vault_client
from revbond_gateway.infrastructure.clients.bonds import BondFactoryClient
from revbond_gateway.infrastructure.clients.kyc import KYCRegistryClient
from revbond_gateway.infrastructure.clients.oracle import RevenueOracleClient
from revbond_gateway.infrastructure.clients.vaults import EscrowVaultClient
from revbond_gateway.infrastructure.database.models import Base
from revbond_gateway.infrastructure.database.session import get_db
from mock_services.chain_relay.main import create_relay_app


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

RELAY_URL = "http://chain-relay"
BUSINESS_ID = "0x1111111111111111111111111111111111111111"
OTHER_BUSINESS_ID = "0x2222222222222222222222222222222222222222"


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def relay_app() -> FastAPI:
    """Fresh in-memory chain relay per test"""
    return create_relay_app()


@pytest.fixture
def client(db: Session, relay_app: FastAPI) -> TestClient:
    """Create FastAPI test client with test database and stub chain relay"""
    app = create_app()
    transport = httpx.ASGITransport(app=relay_app)

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_oracle_client] = lambda: RevenueOracleClient(base_url=RELAY_URL, transport=transport)
    app.dependency_overrides[get_bond_client] = lambda: BondFactoryClient(base_url=RELAY_URL, transport=transport)
    app.dependency_overrides[get_kyc_client] = lambda: KYCRegistryClient(base_url=RELAY_URL, transport=transport)
    app.dependency_overrides[get_vault_client] = lambda: EscrowVaultClient(base_url=RELAY_URL, transport=transport)
    return TestClient(app)


@pytest.fixture
def healthy_csv() -> str:
    """Statement with 8000 in, 1000 out and a 7000 closing balance"""
    return (
        "date,description,credit,debit,balance\n"
        "2024-01-02,Customer payment,5000.00,,5000.00\n"
        "2024-01-05,Supplier invoice,,1000.00,4000.00\n"
        "2024-01-10,Customer payment,3000.00,,7000.00\n"
    )


@pytest.fixture
def thin_csv() -> str:
    """Statement with small deposits and an almost empty account"""
    return (
        "date,description,credit,debit,balance\n"
        "2024-01-02,Customer payment,300.00,,300.00\n"
        "2024-01-09,Rent,,250.00,50.00\n"
    )


@pytest.fixture
def healthy_text_lines() -> list[str]:
    """Free-text statement as rendered from a PDF text layer"""
    return [
        "ACME BANK STATEMENT",
        "Deposit from customer 4,500.00",
        "Deposit from customer 3,500.00",
        "Withdrawal ATM 800.00",
        "Debit card purchase 200.00",
        "Closing balance 7,000.00",
    ]
