"""
Pydantic schemas for API requests, and the JSON views of domain objects
"""

from datetime import date
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field

from ..amortization import LoanTerms
from ..currency import DEFAULT_PRECISION, decimal_from_string, display_string
from ..ledger import ScheduleEntry
from ..loans import Loan, LoanPayment, LoanType
from ..reporting import loan_progress


class LoanTermsModel(BaseModel):
    principal_amount: str = Field(..., description="Decimal amount as string")
    annual_interest_rate_percent: str = Field(..., description="Annual rate in percent, e.g. '12'")
    tenure_months: int = Field(..., description="Number of monthly installments")

    def to_loan_terms(self) -> LoanTerms:
        return LoanTerms(
            principal_amount=decimal_from_string(self.principal_amount),
            annual_interest_rate_percent=decimal_from_string(self.annual_interest_rate_percent),
            tenure_months=self.tenure_months
        )


class CreateLoanRequest(LoanTermsModel):
    user_id: str
    borrower_name: str
    borrower_email: Optional[str] = None
    lender_name: Optional[str] = None
    loan_type: str = Field("borrowed", description="borrowed or lent")
    originated_on: Optional[str] = None  # ISO date string
    notify_borrower: bool = True

    def to_loan_type(self) -> LoanType:
        return LoanType(self.loan_type.lower())

    def origination_date(self) -> Optional[date]:
        return date.fromisoformat(self.originated_on) if self.originated_on else None


class LoanPaymentRequest(BaseModel):
    payment_date: Optional[str] = None  # ISO date string

    def to_date(self) -> Optional[date]:
        return date.fromisoformat(self.payment_date) if self.payment_date else None


class EMIRequest(LoanTermsModel):
    pass


def loan_view(loan: Loan, precision: int = DEFAULT_PRECISION) -> Dict[str, Any]:
    state = loan.state
    return {
        "id": loan.id,
        "user_id": loan.user_id,
        "loan_type": loan.loan_type.value,
        "borrower_name": loan.borrower.name,
        "borrower_email": loan.borrower.email,
        "lender_name": loan.lender_name,
        "principal_amount": str(loan.terms.principal_amount),
        "annual_interest_rate_percent": str(loan.terms.annual_interest_rate_percent),
        "tenure_months": loan.terms.tenure_months,
        "installment_amount": display_string(loan.installment_amount, precision),
        "status": state.status.value,
        "remaining_principal": display_string(state.remaining_principal, precision),
        "paid_installments": state.paid_installments,
        "remaining_installments": loan.remaining_installments,
        "progress": display_string(loan_progress(loan), 4),
        "next_due_date": state.next_due_date.isoformat() if state.next_due_date else None,
        "originated_on": state.originated_on.isoformat(),
        "created_at": loan.created_at.isoformat()
    }


def payment_view(payment: LoanPayment, precision: int = DEFAULT_PRECISION) -> Dict[str, Any]:
    record = payment.record
    return {
        "id": payment.id,
        "loan_id": record.loan_id,
        "installment_number": record.installment_number,
        "amount_paid": display_string(record.amount_paid, precision),
        "interest_component": display_string(record.interest_component, precision),
        "principal_component": display_string(record.principal_component, precision),
        "remaining_principal": display_string(record.resulting_remaining_principal, precision),
        "residual_forgiven": display_string(record.residual_forgiven, precision),
        "payment_date": record.payment_date.isoformat()
    }


def schedule_entry_view(entry: ScheduleEntry, precision: int = DEFAULT_PRECISION) -> Dict[str, Any]:
    return {
        "installment_number": entry.installment_number,
        "due_date": entry.due_date.isoformat(),
        "installment_amount": display_string(entry.installment_amount, precision),
        "interest_component": display_string(entry.interest_component, precision),
        "principal_component": display_string(entry.principal_component, precision),
        "remaining_principal": display_string(entry.remaining_principal, precision)
    }
