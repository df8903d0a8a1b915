"""
Per-user endpoints: loans, payment history and dashboard statistics
"""

from typing import Optional

from fastapi import APIRouter, HTTPException, Depends

from .dependencies import LendingSystem, get_lending_system
from .schemas import loan_view, payment_view
from ..ledger import LoanStatus
from ..reporting import compute_portfolio_stats


router = APIRouter()


@router.get("/{user_id}/loans")
async def list_user_loans(
    user_id: str,
    status: Optional[str] = None,
    system: LendingSystem = Depends(get_lending_system)
):
    """List a user's loans, optionally filtered by status"""
    try:
        status_filter = LoanStatus(status.lower()) if status else None
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid status: {status}")

    loans = system.loan_manager.list_user_loans(user_id, status=status_filter)
    precision = system.config.display_precision
    return {"loans": [loan_view(loan, precision) for loan in loans]}


@router.get("/{user_id}/payments")
async def get_user_payments(
    user_id: str,
    system: LendingSystem = Depends(get_lending_system)
):
    """Payment history across all of a user's loans, most recent first"""
    payments = system.loan_manager.get_user_payments(user_id)
    precision = system.config.display_precision
    return {"payments": [payment_view(payment, precision) for payment in payments]}


@router.get("/{user_id}/stats")
async def get_user_stats(
    user_id: str,
    system: LendingSystem = Depends(get_lending_system)
):
    """Dashboard statistics for a user"""
    stats = compute_portfolio_stats(system.loan_manager.list_user_loans(user_id))
    return stats.to_dict(system.config.display_precision)
