"""
Reporting Module

Portfolio statistics for a user's dashboard. This is the one place the
summary numbers are computed; every surface reads them from here.
"""

from decimal import Decimal, localcontext
from dataclasses import dataclass
from typing import Any, Dict, Iterable

from .amortization import DECIMAL_CONTEXT, ZERO
from .currency import DEFAULT_PRECISION, display_string


@dataclass(frozen=True)
class PortfolioStats:
    """Summary of a set of loans"""
    total_loans: int
    active_loans: int
    completed_loans: int
    total_principal: Decimal    # Over all loans
    total_emi: Decimal          # Over active loans only

    def to_dict(self, precision: int = DEFAULT_PRECISION) -> Dict[str, Any]:
        return {
            'total_loans': self.total_loans,
            'active_loans': self.active_loans,
            'completed_loans': self.completed_loans,
            'total_principal': display_string(self.total_principal, precision),
            'total_emi': display_string(self.total_emi, precision)
        }


def compute_portfolio_stats(loans: Iterable) -> PortfolioStats:
    """
    Compute dashboard statistics

    Args:
        loans: Loan objects

    Returns:
        PortfolioStats at full precision
    """
    total = active = completed = 0
    total_principal = ZERO
    total_emi = ZERO

    with localcontext(DECIMAL_CONTEXT):
        for loan in loans:
            total += 1
            total_principal += loan.terms.principal_amount
            if loan.is_active:
                active += 1
                total_emi += loan.installment_amount
            else:
                completed += 1

    return PortfolioStats(
        total_loans=total,
        active_loans=active,
        completed_loans=completed,
        total_principal=total_principal,
        total_emi=total_emi
    )


def loan_progress(loan) -> Decimal:
    """Fraction of installments paid, 0 to 1"""
    with localcontext(DECIMAL_CONTEXT):
        return Decimal(loan.state.paid_installments) / Decimal(loan.terms.tenure_months)
