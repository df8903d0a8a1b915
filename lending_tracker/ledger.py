"""
Payment Ledger Module

Applies installment payments to a loan snapshot: splits each installment into
interest and principal, reduces the outstanding balance, advances the due date
and decides when the loan is completed. Every operation here is a pure state
transition; persistence belongs to the caller.
"""

from decimal import Decimal, localcontext
from datetime import datetime, timezone, date
from dataclasses import dataclass, replace
from typing import List, Optional, Tuple
from enum import Enum

from .amortization import (
    DECIMAL_CONTEXT, ZERO, LoanTerms, Number, add_months, to_decimal
)
from .exceptions import InvalidTermsError, LoanAlreadyCompletedError


class LoanStatus(Enum):
    """Loan lifecycle states"""
    ACTIVE = "active"           # Installments still due
    COMPLETED = "completed"     # All installments paid, terminal


@dataclass(frozen=True)
class LoanState:
    """Repayment snapshot of a loan"""
    remaining_principal: Decimal
    paid_installments: int
    next_due_date: Optional[date]
    status: LoanStatus
    originated_on: date

    @property
    def is_active(self) -> bool:
        return self.status == LoanStatus.ACTIVE

    @property
    def is_completed(self) -> bool:
        return self.status == LoanStatus.COMPLETED


@dataclass(frozen=True)
class PaymentRecord:
    """Immutable record of one applied installment"""
    loan_id: Optional[str]
    installment_number: int
    amount_paid: Decimal
    interest_component: Decimal
    principal_component: Decimal
    resulting_remaining_principal: Decimal
    payment_date: date
    residual_forgiven: Decimal = ZERO   # Balance absorbed by the final installment


@dataclass(frozen=True)
class ScheduleEntry:
    """Single row of a projected repayment schedule"""
    installment_number: int
    due_date: date
    installment_amount: Decimal
    interest_component: Decimal
    principal_component: Decimal
    remaining_principal: Decimal


def open_loan_state(terms: LoanTerms, originated_on: date) -> LoanState:
    """Initial state of a newly created loan: nothing paid, first due in a month"""
    return LoanState(
        remaining_principal=terms.principal_amount,
        paid_installments=0,
        next_due_date=add_months(originated_on, 1),
        status=LoanStatus.ACTIVE,
        originated_on=originated_on
    )


def apply_payment(
    loan_state: LoanState,
    installment_amount: Number,
    terms: LoanTerms,
    payment_date: Optional[date] = None,
    loan_id: Optional[str] = None
) -> Tuple[PaymentRecord, LoanState]:
    """
    Apply one installment to a loan.

    Interest is charged on the remaining principal at the monthly rate and the
    rest of the installment reduces principal. The balance is clamped at zero.
    The loan completes once the paid count reaches the tenure, whatever residual
    balance is left; that residual is forgiven and reported on the record.

    Args:
        loan_state: Current snapshot, left untouched
        installment_amount: Fixed installment computed at creation
        terms: Loan terms (rate and tenure)
        payment_date: Date of payment (defaults to today, UTC)
        loan_id: Loan reference carried onto the record

    Returns:
        Tuple of (PaymentRecord, new LoanState)

    Raises:
        LoanAlreadyCompletedError: If the loan is not active
    """
    if loan_state.status != LoanStatus.ACTIVE:
        raise LoanAlreadyCompletedError(loan_id)

    installment = to_decimal(installment_amount, "installment_amount")
    if installment <= ZERO:
        raise InvalidTermsError(f"installment_amount must be positive, got {installment}")

    if payment_date is None:
        payment_date = datetime.now(timezone.utc).date()

    with localcontext(DECIMAL_CONTEXT):
        interest = loan_state.remaining_principal * terms.monthly_rate
        principal = installment - interest
        remaining = max(ZERO, loan_state.remaining_principal - principal)

    paid = loan_state.paid_installments + 1
    completed = paid >= terms.tenure_months

    if completed:
        new_state = replace(
            loan_state,
            remaining_principal=remaining,
            paid_installments=paid,
            next_due_date=None,
            status=LoanStatus.COMPLETED
        )
    else:
        base_date = loan_state.next_due_date or loan_state.originated_on
        new_state = replace(
            loan_state,
            remaining_principal=remaining,
            paid_installments=paid,
            next_due_date=add_months(base_date, 1)
        )

    record = PaymentRecord(
        loan_id=loan_id,
        installment_number=paid,
        amount_paid=installment,
        interest_component=interest,
        principal_component=principal,
        resulting_remaining_principal=remaining,
        payment_date=payment_date,
        residual_forgiven=remaining if completed else ZERO
    )

    return record, new_state


class PaymentLedger:
    """
    Binds the constant inputs of one loan (terms and fixed installment)
    so payments can be applied snapshot by snapshot.
    """

    def __init__(self, terms: LoanTerms, installment_amount: Optional[Number] = None):
        self.terms = terms
        if installment_amount is None:
            self.installment_amount = terms.installment()
        else:
            self.installment_amount = to_decimal(installment_amount, "installment_amount")

    def open(self, originated_on: date) -> LoanState:
        return open_loan_state(self.terms, originated_on)

    def apply(
        self,
        loan_state: LoanState,
        payment_date: Optional[date] = None,
        loan_id: Optional[str] = None
    ) -> Tuple[PaymentRecord, LoanState]:
        return apply_payment(
            loan_state, self.installment_amount, self.terms,
            payment_date=payment_date, loan_id=loan_id
        )


def project_schedule(
    terms: LoanTerms,
    installment_amount: Number,
    originated_on: date
) -> List[ScheduleEntry]:
    """
    Project the full repayment schedule by paying every installment on its due date.

    Uses apply_payment for each row, so the projection follows exactly the same
    clamping and completion policy as real payments.
    """
    ledger = PaymentLedger(terms, installment_amount)
    state = ledger.open(originated_on)
    schedule = []

    while state.is_active:
        due_date = state.next_due_date
        record, state = ledger.apply(state, payment_date=due_date)
        schedule.append(ScheduleEntry(
            installment_number=record.installment_number,
            due_date=due_date,
            installment_amount=record.amount_paid,
            interest_component=record.interest_component,
            principal_component=record.principal_component,
            remaining_principal=record.resulting_remaining_principal
        ))

    return schedule
