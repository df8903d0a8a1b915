"""Exception hierarchy for the lending tracker."""


class LendingError(Exception):
    """Base exception for all lending tracker errors."""


class InvalidTermsError(LendingError, ValueError):
    """Raised when loan terms break the principal/rate/tenure constraints."""


class LoanAlreadyCompletedError(LendingError):
    """Raised when a payment is attempted on a completed loan."""

    def __init__(self, loan_id=None):
        self.loan_id = loan_id
        if loan_id:
            message = f"Loan {loan_id} is already completed"
        else:
            message = "Loan is already completed"
        super().__init__(message)


class LoanNotFoundError(LendingError, LookupError):
    """Raised when a referenced loan does not exist."""

    def __init__(self, loan_id: str):
        self.loan_id = loan_id
        super().__init__(f"Loan {loan_id} not found")


class StaleLoanStateError(LendingError):
    """Raised when a loan was modified by another writer since it was loaded."""
