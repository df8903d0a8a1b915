"""
EMI calculator endpoint
"""

from fastapi import APIRouter, HTTPException, Depends

from .dependencies import LendingSystem, get_lending_system
from .schemas import EMIRequest
from ..amortization import total_payable
from ..currency import display_string


router = APIRouter()


@router.post("/emi")
async def calculate_emi(
    request: EMIRequest,
    system: LendingSystem = Depends(get_lending_system)
):
    """Preview the installment for a set of terms without recording a loan"""
    try:
        terms = request.to_loan_terms()
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    precision = system.config.display_precision
    installment = terms.installment()
    return {
        "principal_amount": str(terms.principal_amount),
        "annual_interest_rate_percent": str(terms.annual_interest_rate_percent),
        "tenure_months": terms.tenure_months,
        "installment_amount": display_string(installment, precision),
        "total_payable": display_string(total_payable(installment, terms.tenure_months), precision),
        "total_interest": display_string(terms.total_interest(installment), precision)
    }
