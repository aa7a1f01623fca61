"""Integration tests for API endpoints"""

from unittest.mock import AsyncMock, patch
from fastapi import FastAPI
from fastapi.testclient import TestClient
from revbond_gateway.config import settings
from revbond_gateway.domain.exceptions import ChainRelayError

BUSINESS_ID = "0x1111111111111111111111111111111111111111"
OTHER_BUSINESS_ID = "0x2222222222222222222222222222222222222222"


def _upload(client: TestClient, content: str, business_id: str = BUSINESS_ID, filename: str = "statement.csv"):
    return client.post(
        "/v1/statements/analyze",
        data={"business_id": business_id},
        files={"file": (filename, content.encode("utf-8"), "text/csv")},
    )


def test_health_endpoint(client: TestClient):
    """Test health check endpoint"""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_metrics_endpoint(client: TestClient):
    """Test Prometheus metrics endpoint"""
    response = client.get("/metrics")
    assert response.status_code == 200
    assert "revbond_statement_analysis_total" in response.text


def test_request_id_propagated(client: TestClient):
    response = client.get("/health", headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"


def test_analyze_eligible_statement(client: TestClient, relay_app: FastAPI, healthy_csv: str):
    """Eligible CSV is scored, persisted and forwarded to the oracle"""
    response = _upload(client, healthy_csv)

    assert response.status_code == 200
    data = response.json()
    assert data["source_kind"] == "csv"
    assert data["aggregates"] == {
        "total_deposits": 8000,
        "total_withdrawals": 1000,
        "total_balance": 7000,
        "transaction_count": 3,
        "customer_count": 2,
        "monthly_revenue": 8000,
    }
    assert data["score"]["composite_score"] == 0.66
    assert data["score"]["tier"] == "B"
    assert data["score"]["apy"] == "15%"
    assert data["score"]["max_loan"] == 24000
    assert data["score"]["metrics"] == {"g": 8750, "r": 8750, "c": 8750, "s": 300}
    assert data["eligibility"] == {"eligible": True, "reasons": []}
    assert data["oracle_update_scheduled"] is True

    # Background task already ran against the stub relay
    record = relay_app.state.oracle[BUSINESS_ID.lower()]
    assert record["mrr"] == 8_000_000_000
    assert record["customers"] == 2
    assert record["churn"] == 200


def test_analyze_ineligible_statement(client: TestClient, relay_app: FastAPI, thin_csv: str):
    """Ineligible statements report every reason and skip the oracle"""
    response = _upload(client, thin_csv)

    assert response.status_code == 200
    data = response.json()
    assert data["eligibility"]["eligible"] is False
    codes = [r["code"] for r in data["eligibility"]["reasons"]]
    assert codes == ["score_too_low", "balance_too_low", "revenue_too_low", "max_loan_too_low"]
    assert data["oracle_update_scheduled"] is False
    assert relay_app.state.oracle == {}


def test_analyze_no_extractable_data(client: TestClient):
    response = _upload(client, "date,description,debit,balance\n2024-01-01,Rent,500,100\n")

    assert response.status_code == 422
    assert response.json()["detail"]["code"] == "no_extractable_data"


def test_analyze_empty_file(client: TestClient):
    response = _upload(client, "")

    assert response.status_code == 422
    assert response.json()["detail"]["code"] == "no_extractable_data"


def test_analyze_unreadable_pdf(client: TestClient):
    response = client.post(
        "/v1/statements/analyze",
        data={"business_id": BUSINESS_ID},
        files={"file": ("statement.pdf", b"%PDF-broken", "application/pdf")},
    )

    assert response.status_code == 400


def test_analyze_rejects_invalid_wallet(client: TestClient, healthy_csv: str):
    response = _upload(client, healthy_csv, business_id="not-a-wallet")

    assert response.status_code == 422


def test_analyze_rejects_oversized_upload(client: TestClient, healthy_csv: str):
    with patch.object(settings, "max_upload_bytes", 10):
        response = _upload(client, healthy_csv)

    assert response.status_code == 413


@patch("revbond_gateway.infrastructure.clients.oracle.RevenueOracleClient.update")
def test_analyze_survives_oracle_failure(mock_update: AsyncMock, client: TestClient, healthy_csv: str):
    """Oracle outage is logged; the analysis itself still succeeds"""
    mock_update.side_effect = ChainRelayError("relay down")

    response = _upload(client, healthy_csv)

    assert response.status_code == 200
    assert response.json()["oracle_update_scheduled"] is True
    mock_update.assert_awaited_once_with(BUSINESS_ID, 8000, 2)


def test_statement_history(client: TestClient, healthy_csv: str, thin_csv: str):
    _upload(client, thin_csv, filename="january.csv")
    _upload(client, healthy_csv, filename="february.csv")
    _upload(client, healthy_csv, business_id=OTHER_BUSINESS_ID)

    response = client.get(f"/v1/statements/history?business_id={BUSINESS_ID}")

    assert response.status_code == 200
    data = response.json()
    assert data["business_id"] == BUSINESS_ID
    assert [a["file_name"] for a in data["analyses"]] == ["february.csv", "january.csv"]
    assert [a["eligible"] for a in data["analyses"]] == [True, False]


def test_oracle_score_after_verification(client: TestClient, healthy_csv: str):
    """Oracle path re-tiers the published MRR with its own table"""
    _upload(client, healthy_csv)

    response = client.get(f"/v1/oracle/{BUSINESS_ID}/score")

    assert response.status_code == 200
    data = response.json()
    assert data["mrr"] == 8000
    assert data["customers"] == 2
    assert data["score"]["composite_score"] == 0.1
    assert data["score"]["tier"] == "D"
    assert data["score"]["apy"] == "15%"


def test_oracle_score_unverified(client: TestClient):
    response = client.get(f"/v1/oracle/{OTHER_BUSINESS_ID}/score")
    assert response.status_code == 404


@patch("revbond_gateway.infrastructure.clients.oracle.RevenueOracleClient.get")
def test_oracle_score_relay_down(mock_get: AsyncMock, client: TestClient):
    mock_get.side_effect = ChainRelayError("timeout")

    response = client.get(f"/v1/oracle/{BUSINESS_ID}/score")
    assert response.status_code == 503


def test_mint_bond(client: TestClient, relay_app: FastAPI, healthy_csv: str):
    """Eligible, oracle-verified business mints the default bond"""
    _upload(client, healthy_csv)

    response = client.post("/v1/bonds", json={"business_id": BUSINESS_ID})

    assert response.status_code == 200
    data = response.json()
    assert data["amount_usd"] == 3000
    assert data["tier"] == "B"
    assert data["apy"] == "15%"
    assert data["token_address"].startswith("0x")

    minted = relay_app.state.bonds[BUSINESS_ID.lower()][0]
    assert minted["amount"] == 3_000_000_000
    assert (minted["g"], minted["r"], minted["c"], minted["s"]) == (8750, 8750, 8750, 300)


def test_mint_bond_without_analysis(client: TestClient):
    response = client.post("/v1/bonds", json={"business_id": BUSINESS_ID})
    assert response.status_code == 409


def test_mint_bond_ineligible(client: TestClient, thin_csv: str):
    _upload(client, thin_csv)

    response = client.post("/v1/bonds", json={"business_id": BUSINESS_ID})

    assert response.status_code == 422
    detail = response.json()["detail"]
    assert detail["code"] == "ineligible_profile"
    assert len(detail["reasons"]) == 4


def test_mint_bond_latest_upload_wins(client: TestClient, healthy_csv: str, thin_csv: str):
    """A newer ineligible statement blocks minting"""
    _upload(client, healthy_csv)
    _upload(client, thin_csv)

    response = client.post("/v1/bonds", json={"business_id": BUSINESS_ID})
    assert response.status_code == 422


def test_mint_bond_amount_over_max_loan(client: TestClient, healthy_csv: str):
    _upload(client, healthy_csv)

    response = client.post("/v1/bonds", json={"business_id": BUSINESS_ID, "amount_usd": 30000})
    assert response.status_code == 422


@patch("revbond_gateway.infrastructure.clients.oracle.RevenueOracleClient.update")
def test_mint_bond_requires_oracle_verification(mock_update: AsyncMock, client: TestClient, healthy_csv: str):
    mock_update.return_value = None
    _upload(client, healthy_csv)

    response = client.post("/v1/bonds", json={"business_id": BUSINESS_ID})
    assert response.status_code == 409


@patch("revbond_gateway.infrastructure.clients.bonds.BondFactoryClient.create")
def test_mint_bond_relay_down(mock_create: AsyncMock, client: TestClient, healthy_csv: str):
    mock_create.side_effect = ChainRelayError("relay down")
    _upload(client, healthy_csv)

    response = client.post("/v1/bonds", json={"business_id": BUSINESS_ID})
    assert response.status_code == 503


def _submit_kyc(client: TestClient, **overrides):
    body = {
        "business_id": BUSINESS_ID,
        "business_name": "Lagos Bakery Ltd",
        "registration_number": "RC123456",
    }
    body.update(overrides)
    return client.post("/v1/kyc/submissions", json=body)


def test_kyc_submit_and_list(client: TestClient):
    response = _submit_kyc(client)

    assert response.status_code == 201
    data = response.json()
    assert data["status"] == "pending"
    assert data["country"] == "Nigeria"
    assert data["registration_type"] == "CAC"

    listed = client.get("/v1/kyc/submissions").json()["submissions"]
    assert [s["id"] for s in listed] == [data["id"]]


def test_kyc_submit_requires_fields(client: TestClient):
    assert _submit_kyc(client, business_name="").status_code == 422
    assert _submit_kyc(client, registration_number="   ").status_code == 422


def test_kyc_approve(client: TestClient, relay_app: FastAPI):
    submission_id = _submit_kyc(client).json()["id"]

    response = client.post(f"/v1/kyc/submissions/{submission_id}/approve")

    assert response.status_code == 200
    assert response.json()["status"] == "approved"
    assert relay_app.state.kyc[BUSINESS_ID.lower()] is True
    assert client.get("/v1/kyc/submissions").json()["submissions"] == []

    again = client.post(f"/v1/kyc/submissions/{submission_id}/approve")
    assert again.status_code == 409


@patch("revbond_gateway.infrastructure.clients.kyc.KYCRegistryClient.verify_business")
def test_kyc_approve_relay_down_keeps_pending(mock_verify: AsyncMock, client: TestClient):
    mock_verify.side_effect = ChainRelayError("relay down")
    submission_id = _submit_kyc(client).json()["id"]

    response = client.post(f"/v1/kyc/submissions/{submission_id}/approve")

    assert response.status_code == 503
    pending = client.get("/v1/kyc/submissions").json()["submissions"]
    assert [s["id"] for s in pending] == [submission_id]


def test_kyc_reject(client: TestClient):
    submission_id = _submit_kyc(client).json()["id"]

    response = client.post(
        f"/v1/kyc/submissions/{submission_id}/reject",
        json={"reason": "Registry number not found"},
    )

    assert response.status_code == 200
    assert response.json()["status"] == "rejected"
    assert response.json()["rejection_reason"] == "Registry number not found"

    rejected = client.get("/v1/kyc/submissions?status=rejected").json()["submissions"]
    assert len(rejected) == 1


def test_kyc_unknown_submission(client: TestClient):
    response = client.post("/v1/kyc/submissions/00000000-0000-0000-0000-000000000000/approve")
    assert response.status_code == 404

    response = client.post("/v1/kyc/submissions/not-a-uuid/reject", json={"reason": "x"})
    assert response.status_code == 404


def test_mint_bond_default_capped_at_max_loan(client: TestClient, relay_app: FastAPI):
    """Eligible statement with a ceiling under the standard size mints at the ceiling"""
    small_csv = "date,credit,debit,balance\n2024-01-01,800.00,,1500.00\n"
    analysis = _upload(client, small_csv).json()
    assert analysis["eligibility"]["eligible"] is True
    assert analysis["score"]["max_loan"] == 2400

    response = client.post("/v1/bonds", json={"business_id": BUSINESS_ID})

    assert response.status_code == 200
    assert response.json()["amount_usd"] == 2400
    assert relay_app.state.bonds[BUSINESS_ID.lower()][0]["amount"] == 2_400_000_000


def _mint(client: TestClient, csv_content: str, business_id: str = BUSINESS_ID) -> dict:
    _upload(client, csv_content, business_id=business_id)
    response = client.post("/v1/bonds", json={"business_id": business_id})
    assert response.status_code == 200
    return response.json()


def test_list_bonds_with_oracle_tier(client: TestClient, healthy_csv: str):
    first = _mint(client, healthy_csv)
    second = _mint(client, healthy_csv, business_id=OTHER_BUSINESS_ID)

    response = client.get("/v1/bonds")

    assert response.status_code == 200
    bonds = response.json()["bonds"]
    assert [b["bond_id"] for b in bonds] == [second["bond_id"], first["bond_id"]]
    listing = bonds[1]
    assert listing["vault_address"] == first["vault_address"]
    assert listing["verified_mrr"] == 8000
    assert listing["oracle_score"] == 0.1
    assert listing["oracle_tier"] == "D"
    assert listing["oracle_apy"] == "15%"

    filtered = client.get(f"/v1/bonds?business_id={OTHER_BUSINESS_ID}").json()["bonds"]
    assert [b["bond_id"] for b in filtered] == [second["bond_id"]]


def test_list_bonds_unverified_business_has_no_tier(client: TestClient, relay_app: FastAPI, healthy_csv: str):
    _mint(client, healthy_csv)
    relay_app.state.oracle[BUSINESS_ID.lower()]["verified"] = False

    listing = client.get("/v1/bonds").json()["bonds"][0]

    assert listing["oracle_tier"] is None
    assert listing["oracle_apy"] is None


def test_list_bonds_relay_down(client: TestClient, healthy_csv: str):
    _mint(client, healthy_csv)

    with patch(
        "revbond_gateway.infrastructure.clients.oracle.RevenueOracleClient.get",
        side_effect=ChainRelayError("relay down"),
    ):
        response = client.get("/v1/bonds")
    assert response.status_code == 503


def test_vault_status(client: TestClient, relay_app: FastAPI, healthy_csv: str):
    bond = _mint(client, healthy_csv)
    relay_app.state.vaults[bond["vault_address"]]["raised"] = 1_500_000_000

    response = client.get(f"/v1/bonds/{bond['bond_id']}/vault")

    assert response.status_code == 200
    data = response.json()
    assert data["vault_address"] == bond["vault_address"]
    assert data["total_raised"] == 1500
    assert data["total_withdrawn"] == 0
    assert data["available"] == 1500
    assert data["kyc_verified"] is False


def test_vault_status_unknown_bond(client: TestClient):
    assert client.get("/v1/bonds/00000000-0000-0000-0000-000000000000/vault").status_code == 404
    assert client.post("/v1/bonds/not-a-uuid/withdraw").status_code == 404


def test_withdraw_requires_funds(client: TestClient, healthy_csv: str):
    bond = _mint(client, healthy_csv)

    response = client.post(f"/v1/bonds/{bond['bond_id']}/withdraw")
    assert response.status_code == 409


def test_withdraw_requires_kyc(client: TestClient, relay_app: FastAPI, healthy_csv: str):
    bond = _mint(client, healthy_csv)
    relay_app.state.vaults[bond["vault_address"]]["raised"] = 1_500_000_000

    response = client.post(f"/v1/bonds/{bond['bond_id']}/withdraw")

    assert response.status_code == 403
    assert response.json()["detail"]["code"] == "kyc_required"
    assert relay_app.state.vaults[bond["vault_address"]]["withdrawn"] == 0


def test_withdraw_after_kyc_approval(client: TestClient, relay_app: FastAPI, healthy_csv: str):
    bond = _mint(client, healthy_csv)
    relay_app.state.vaults[bond["vault_address"]]["raised"] = 1_500_000_000
    submission_id = _submit_kyc(client).json()["id"]
    client.post(f"/v1/kyc/submissions/{submission_id}/approve")

    response = client.post(f"/v1/bonds/{bond['bond_id']}/withdraw")

    assert response.status_code == 200
    assert response.json()["amount_withdrawn"] == 1500

    status = client.get(f"/v1/bonds/{bond['bond_id']}/vault").json()
    assert status["total_withdrawn"] == 1500
    assert status["available"] == 0
    assert status["kyc_verified"] is True
