"""
Loan endpoints
"""

from typing import Optional

from fastapi import APIRouter, HTTPException, Depends, status

from .dependencies import LendingSystem, get_lending_system
from .schemas import (
    CreateLoanRequest, LoanPaymentRequest, loan_view, payment_view, schedule_entry_view
)
from ..exceptions import LoanAlreadyCompletedError, LoanNotFoundError, StaleLoanStateError


router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_loan(
    request: CreateLoanRequest,
    system: LendingSystem = Depends(get_lending_system)
):
    """Record a new loan and tell the borrower about it"""
    try:
        loan = system.loan_manager.create_loan(
            user_id=request.user_id,
            terms=request.to_loan_terms(),
            borrower_name=request.borrower_name,
            borrower_email=request.borrower_email,
            lender_name=request.lender_name,
            loan_type=request.to_loan_type(),
            originated_on=request.origination_date()
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    notification_sent = False
    if request.notify_borrower and system.notification_service:
        notification_sent = await system.notification_service.notify_borrower(loan)

    result = loan_view(loan, system.config.display_precision)
    result["notification_sent"] = notification_sent
    return result


@router.get("/{loan_id}")
async def get_loan(
    loan_id: str,
    system: LendingSystem = Depends(get_lending_system)
):
    """Get loan details"""
    loan = system.loan_manager.get_loan(loan_id)
    if not loan:
        raise HTTPException(status_code=404, detail="Loan not found")
    return loan_view(loan, system.config.display_precision)


@router.post("/{loan_id}/pay")
async def pay_installment(
    loan_id: str,
    request: Optional[LoanPaymentRequest] = None,
    system: LendingSystem = Depends(get_lending_system)
):
    """Pay the next installment; returns the payment and the updated loan"""
    try:
        payment, loan = system.loan_manager.make_payment(
            loan_id, payment_date=request.to_date() if request else None
        )
    except LoanNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except (LoanAlreadyCompletedError, StaleLoanStateError) as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    precision = system.config.display_precision
    return {
        "payment": payment_view(payment, precision),
        "loan": loan_view(loan, precision),
        "message": "Loan completed" if not loan.is_active else "Installment paid"
    }


@router.get("/{loan_id}/payments")
async def get_loan_payments(
    loan_id: str,
    system: LendingSystem = Depends(get_lending_system)
):
    """Payment history of a loan"""
    try:
        payments = system.loan_manager.get_loan_payments(loan_id)
    except LoanNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    precision = system.config.display_precision
    return {"payments": [payment_view(payment, precision) for payment in payments]}


@router.get("/{loan_id}/schedule")
async def get_loan_schedule(
    loan_id: str,
    system: LendingSystem = Depends(get_lending_system)
):
    """Get projected repayment schedule"""
    try:
        schedule = system.loan_manager.get_schedule(loan_id)
    except LoanNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    precision = system.config.display_precision
    return {"schedule": [schedule_entry_view(entry, precision) for entry in schedule]}
