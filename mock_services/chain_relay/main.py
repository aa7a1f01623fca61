from fastapi import FastAPI, HTTPException
from pydantic import BaseModel
import time


class OracleUpdate(BaseModel):
    business: str
    mrr: int
    customers: int
    churn: int


class BondCreate(BaseModel):
    business: str
    amount: int
    g: int
    r: int
    c: int
    s: int


class KYCVerify(BaseModel):
    business: str
    verified: bool


class VaultInvest(BaseModel):
    amount: int


def create_relay_app() -> FastAPI:
    """In-memory stand-in for the oracle, bond factory, escrow vaults and KYC registry contracts"""
    app = FastAPI(title="Mock Chain Relay", version="1.0.0")
    app.state.oracle = {}
    app.state.bonds = {}
    app.state.kyc = {}
    app.state.vaults = {}

    @app.get("/health")
    def health(): return {"status": "ok"}

    @app.post("/oracle/update")
    def oracle_update(body: OracleUpdate):
        app.state.oracle[body.business.lower()] = {
            "mrr": body.mrr,
            "customers": body.customers,
            "churn": body.churn,
            "ts": int(time.time()),
            "verified": True,
        }
        return {"status": "ok"}

    @app.get("/oracle/{business}")
    def oracle_get(business: str):
        default = {"mrr": 0, "customers": 0, "churn": 0, "ts": 0, "verified": False}
        return app.state.oracle.get(business.lower(), default)

    @app.post("/bonds")
    def create_bond(body: BondCreate):
        record = app.state.oracle.get(body.business.lower())
        if not record or not record["verified"]:
            raise HTTPException(status_code=400, detail="business not verified")
        index = sum(len(v) for v in app.state.bonds.values()) + 1
        bond = {"token": f"0x{index:040x}", "vault": f"0x{index + 0x1000:040x}", **body.model_dump()}
        app.state.bonds.setdefault(body.business.lower(), []).append(bond)
        app.state.vaults[bond["vault"]] = {"business": body.business.lower(), "raised": 0, "withdrawn": 0}
        return {"token": bond["token"], "vault": bond["vault"]}

    @app.post("/kyc/verify")
    def kyc_verify(body: KYCVerify):
        app.state.kyc[body.business.lower()] = body.verified
        return {"status": "ok"}

    @app.get("/kyc/{business}")
    def kyc_status(business: str):
        return {"verified": app.state.kyc.get(business.lower(), False)}

    def _vault(vault: str) -> dict:
        record = app.state.vaults.get(vault.lower())
        if record is None:
            raise HTTPException(status_code=404, detail="unknown vault")
        return record

    @app.get("/vaults/{vault}")
    def vault_status(vault: str):
        record = _vault(vault)
        return {"raised": record["raised"], "withdrawn": record["withdrawn"]}

    @app.post("/vaults/{vault}/invest")
    def vault_invest(vault: str, body: VaultInvest):
        record = _vault(vault)
        record["raised"] += body.amount
        return {"status": "ok"}

    @app.post("/vaults/{vault}/withdraw")
    def vault_withdraw(vault: str):
        record = _vault(vault)
        if not app.state.kyc.get(record["business"], False):
            raise HTTPException(status_code=400, detail="Business not KYC verified")
        amount = record["raised"] - record["withdrawn"]
        record["withdrawn"] = record["raised"]
        return {"amount": amount}

    return app


app = create_relay_app()
