"""POST /v1/statements/analyze and GET /v1/statements/history - statement scoring endpoints"""

import time
import logging
from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, HTTPException, Query, Request, UploadFile
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from revbond_gateway.api.v1.schemas import (
    AggregatesSchema,
    AnalysisResponse,
    EligibilitySchema,
    HistoryItem,
    HistoryResponse,
    ReasonSchema,
    WALLET_ADDRESS_PATTERN,
    score_to_schema,
)
from revbond_gateway.api.dependencies import get_oracle_client, get_request_id
from revbond_gateway.config import settings
from revbond_gateway.infrastructure.database.session import get_db
from revbond_gateway.infrastructure.database.repositories import AnalysisRepository
from revbond_gateway.infrastructure.clients.oracle import RevenueOracleClient
from revbond_gateway.infrastructure.documents.loader import load_statement
from revbond_gateway.domain.scoring import analyze_statement
from revbond_gateway.domain.exceptions import ChainRelayError, DocumentReadError, NoExtractableDataError
from revbond_gateway.infrastructure.observability.metrics import extraction_failure_counter, record_analysis
from revbond_gateway.infrastructure.observability.logging import log_analysis

router = APIRouter()


async def forward_to_oracle(
    oracle_client: RevenueOracleClient,
    business_id: str,
    mrr: int,
    customers: int,
    request_id: str,
) -> None:
    """Publish an eligible statement's revenue figures to the oracle"""
    try:
        await oracle_client.update(business_id, mrr, customers)
        logging.info(
            "Oracle updated",
            extra={"request_id": request_id, "business_id": business_id, "step": "oracle_update", "mrr": mrr},
        )
    except ChainRelayError as e:
        logging.error(f"Oracle update failed: {e}", extra={"request_id": request_id, "business_id": business_id})


@router.post("/statements/analyze", response_model=AnalysisResponse)
async def analyze_statement_upload(
    background_tasks: BackgroundTasks,
    request: Request,
    business_id: str = Form(..., pattern=WALLET_ADDRESS_PATTERN, description="Business wallet address"),
    file: UploadFile = File(..., description="Bank statement (CSV, text or PDF)"),
    db: Session = Depends(get_db),
    oracle_client: RevenueOracleClient = Depends(get_oracle_client),
):
    """
    Score an uploaded bank statement.

    Flow:
    1. Render the upload to lines (PDF text layer or decoded text)
    2. Extract aggregates and score them
    3. Evaluate the bond eligibility gate
    4. Persist the analysis
    5. Forward eligible revenue figures to the oracle in the background
    """
    start_time = time.time()
    request_id = get_request_id(request)

    content = await file.read()
    if len(content) > settings.max_upload_bytes:
        raise HTTPException(status_code=413, detail="Statement file too large")

    try:
        source = await run_in_threadpool(load_statement, content, file.content_type, file.filename)
        analysis = analyze_statement(
            source,
            customer_count=settings.default_customer_count,
            min_score=settings.min_eligible_score,
            min_balance=settings.min_ending_balance,
            min_monthly_revenue=settings.min_monthly_revenue,
            min_max_loan=settings.min_max_loan,
        )

        analysis_repo = AnalysisRepository(db)
        db_analysis = analysis_repo.create_analysis(
            business_id=business_id,
            analysis=analysis,
            file_name=file.filename,
        )

        aggregates = analysis.aggregates
        oracle_update_scheduled = False
        if analysis.eligibility.eligible:
            background_tasks.add_task(
                forward_to_oracle,
                oracle_client,
                business_id,
                aggregates.monthly_revenue,
                aggregates.customer_count,
                request_id,
            )
            oracle_update_scheduled = True

        db.commit()

        # Record metrics and logs
        duration_ms = (time.time() - start_time) * 1000
        record_analysis(analysis.eligibility.eligible, analysis.score.tier)
        log_analysis(
            request_id,
            business_id,
            analysis.source_kind,
            analysis.score.composite_score,
            analysis.score.tier,
            analysis.eligibility.eligible,
            duration_ms,
        )

        return AnalysisResponse(
            analysis_id=str(db_analysis.id),
            business_id=business_id,
            source_kind=analysis.source_kind,
            aggregates=AggregatesSchema(
                total_deposits=aggregates.total_deposits,
                total_withdrawals=aggregates.total_withdrawals,
                total_balance=aggregates.total_balance,
                transaction_count=aggregates.transaction_count,
                customer_count=aggregates.customer_count,
                monthly_revenue=aggregates.monthly_revenue,
            ),
            score=score_to_schema(analysis.score),
            eligibility=EligibilitySchema(
                eligible=analysis.eligibility.eligible,
                reasons=[ReasonSchema(code=r.code, message=r.message) for r in analysis.eligibility.reasons],
            ),
            growth_rate=analysis.growth_rate,
            oracle_update_scheduled=oracle_update_scheduled,
        )

    except DocumentReadError as e:
        db.rollback()
        extraction_failure_counter.labels(reason="unreadable_document").inc()
        logging.warning(f"Unreadable document: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=400, detail=str(e))

    except NoExtractableDataError as e:
        db.rollback()
        extraction_failure_counter.labels(reason="no_extractable_data").inc()
        logging.warning(f"No extractable data: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=422, detail={"code": "no_extractable_data", "message": str(e)})

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/statements/history", response_model=HistoryResponse)
def get_statement_history(
    business_id: str = Query(..., description="Business wallet address"),
    db: Session = Depends(get_db),
):
    """
    Retrieve recent statement analyses for a business.

    Returns:
        List of analyses (eligible/ineligible) with tier and loan ceiling
    """
    analysis_repo = AnalysisRepository(db)
    analyses = analysis_repo.get_analyses_by_business(business_id, limit=20)

    history_items = [
        HistoryItem(
            analysis_id=str(a.id),
            file_name=a.file_name,
            composite_score=a.composite_score,
            tier=a.tier,
            max_loan=a.max_loan,
            eligible=a.eligible,
            created_at=a.created_at.isoformat(),
        )
        for a in analyses
    ]

    return HistoryResponse(business_id=business_id, analyses=history_items)
