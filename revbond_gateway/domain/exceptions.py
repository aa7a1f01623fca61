"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class NoExtractableDataError(DomainException):
    """No deposits could be derived from the uploaded statement"""

    pass


class DocumentReadError(DomainException):
    """Uploaded document could not be read or rendered to text"""

    pass


class ChainRelayError(DomainException):
    """Chain relay returned an error or is unavailable"""

    pass


class InvalidSubmissionError(DomainException):
    """KYC submission is missing required fields"""

    pass


class SubmissionNotFoundError(DomainException):
    """KYC submission does not exist"""

    pass


class SubmissionStateError(DomainException):
    """KYC submission is not in a state that allows the requested change"""

    pass


class BondAmountError(DomainException):
    """Requested principal exceeds the analysis's maximum loan"""

    pass


class WithdrawalNotAllowedError(DomainException):
    """Vault funds cannot be released to the business yet"""

    pass


class NothingToWithdrawError(WithdrawalNotAllowedError):
    """Vault holds no raised funds beyond what was already withdrawn"""

    pass


class BusinessNotVerifiedError(WithdrawalNotAllowedError):
    """Business has not passed KYC verification"""

    pass
