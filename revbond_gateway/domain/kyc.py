"""KYC review queue - business verification requests awaiting admin decision"""

from typing import List, Optional, Protocol

from revbond_gateway.domain.exceptions import (
    InvalidSubmissionError,
    SubmissionNotFoundError,
    SubmissionStateError,
)
from revbond_gateway.domain.models import KYCSubmission

PENDING = "pending"
APPROVED = "approved"
REJECTED = "rejected"

# Registry identifier collected per country of registration
REGISTRATION_TYPES = {
    "Nigeria": "CAC",
    "United States": "EIN",
    "United Kingdom": "Company House",
    "Canada": "BN",
}
DEFAULT_REGISTRATION_TYPE = "Business Registration"


class SubmissionRepository(Protocol):
    """Storage for KYC submissions"""

    def list(self, status: Optional[str] = None) -> List[KYCSubmission]: ...

    def get(self, submission_id: str) -> Optional[KYCSubmission]: ...

    def append(self, submission: KYCSubmission) -> KYCSubmission: ...

    def update(self, submission_id: str, **changes) -> KYCSubmission: ...


def registration_type_for(country: str) -> str:
    return REGISTRATION_TYPES.get(country, DEFAULT_REGISTRATION_TYPE)


def submit_kyc(repo: SubmissionRepository, submission: KYCSubmission) -> KYCSubmission:
    """Queue a new submission for review"""
    if not submission.business_name.strip() or not submission.registration_number.strip():
        raise InvalidSubmissionError("Business name and registration number are required")

    if not submission.registration_type:
        submission.registration_type = registration_type_for(submission.country)
    submission.status = PENDING
    submission.rejection_reason = None
    return repo.append(submission)


def pending_submissions(repo: SubmissionRepository) -> List[KYCSubmission]:
    return repo.list(status=PENDING)


def check_pending(repo: SubmissionRepository, submission_id: str) -> KYCSubmission:
    """Fetch a submission, failing unless it is still awaiting review"""
    submission = repo.get(submission_id)
    if submission is None:
        raise SubmissionNotFoundError(f"Submission {submission_id} not found")
    if submission.status != PENDING:
        raise SubmissionStateError(f"Submission {submission_id} is already {submission.status}")
    return submission


def approve_submission(repo: SubmissionRepository, submission_id: str) -> KYCSubmission:
    """Mark a pending submission approved (after the registry call succeeded)"""
    check_pending(repo, submission_id)
    return repo.update(submission_id, status=APPROVED)


def reject_submission(repo: SubmissionRepository, submission_id: str, reason: str) -> KYCSubmission:
    check_pending(repo, submission_id)
    return repo.update(submission_id, status=REJECTED, rejection_reason=reason)