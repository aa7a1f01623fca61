"""KYC review queue endpoints - submit, list, approve and reject business verification"""

import logging
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from revbond_gateway.api.v1.schemas import (
    KYCRejectRequest,
    KYCSubmissionList,
    KYCSubmissionRequest,
    KYCSubmissionResponse,
)
from revbond_gateway.api.dependencies import get_kyc_client, get_request_id, get_submission_repository
from revbond_gateway.infrastructure.database.session import get_db
from revbond_gateway.infrastructure.clients.kyc import KYCRegistryClient
from revbond_gateway.domain import kyc
from revbond_gateway.domain.models import KYCSubmission
from revbond_gateway.domain.exceptions import (
    ChainRelayError,
    InvalidSubmissionError,
    SubmissionNotFoundError,
    SubmissionStateError,
)

router = APIRouter()


def _to_response(submission: KYCSubmission) -> KYCSubmissionResponse:
    return KYCSubmissionResponse(
        id=submission.id,
        business_id=submission.business_id,
        business_name=submission.business_name,
        registration_number=submission.registration_number,
        country=submission.country,
        registration_type=submission.registration_type,
        status=submission.status,
        rejection_reason=submission.rejection_reason,
        submitted_at=submission.submitted_at,
    )


@router.post("/kyc/submissions", response_model=KYCSubmissionResponse, status_code=201)
def create_submission(
    request_body: KYCSubmissionRequest,
    db: Session = Depends(get_db),
    repo=Depends(get_submission_repository),
):
    """Queue business registration details for admin review"""
    try:
        submission = kyc.submit_kyc(
            repo,
            KYCSubmission(
                business_id=request_body.business_id,
                business_name=request_body.business_name,
                registration_number=request_body.registration_number,
                country=request_body.country,
                registration_type=request_body.registration_type or "",
            ),
        )
    except InvalidSubmissionError as e:
        raise HTTPException(status_code=422, detail=str(e))

    db.commit()
    return _to_response(submission)


@router.get("/kyc/submissions", response_model=KYCSubmissionList)
def list_submissions(
    status: str | None = Query("pending", description="pending | approved | rejected; omit filter with 'all'"),
    repo=Depends(get_submission_repository),
):
    """List submissions, pending ones by default"""
    submissions = repo.list(status=None if status == "all" else status)
    return KYCSubmissionList(submissions=[_to_response(s) for s in submissions])


@router.post("/kyc/submissions/{submission_id}/approve", response_model=KYCSubmissionResponse)
async def approve_submission(
    submission_id: str,
    request: Request,
    db: Session = Depends(get_db),
    repo=Depends(get_submission_repository),
    kyc_client: KYCRegistryClient = Depends(get_kyc_client),
):
    """Verify the business on-chain, then mark the submission approved"""
    request_id = get_request_id(request)
    try:
        submission = kyc.check_pending(repo, submission_id)
        await kyc_client.verify_business(submission.business_id)
        approved = kyc.approve_submission(repo, submission_id)
        db.commit()

    except SubmissionNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except SubmissionStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ChainRelayError as e:
        db.rollback()
        logging.error(f"KYC verification failed: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=503, detail="Chain relay unavailable")

    logging.info(
        "Business verified",
        extra={"request_id": request_id, "business_id": approved.business_id, "step": "kyc_approved"},
    )
    return _to_response(approved)


@router.post("/kyc/submissions/{submission_id}/reject", response_model=KYCSubmissionResponse)
def reject_submission(
    submission_id: str,
    request_body: KYCRejectRequest,
    db: Session = Depends(get_db),
    repo=Depends(get_submission_repository),
):
    """Reject a pending submission with a reason"""
    try:
        rejected = kyc.reject_submission(repo, submission_id, request_body.reason)
    except SubmissionNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except SubmissionStateError as e:
        raise HTTPException(status_code=409, detail=str(e))

    db.commit()
    return _to_response(rejected)
