"""
Amortization Module

Fixed-installment (EMI) calculation for monthly reducing-balance loans.
Everything here is pure: no state, no I/O. Results keep full Decimal
precision; rounding to the currency's minor unit is a display concern.
"""

from decimal import Decimal, Context, InvalidOperation, ROUND_HALF_EVEN, localcontext
from datetime import date
from dataclasses import dataclass
from typing import Union
import calendar

from .exceptions import InvalidTermsError


Number = Union[Decimal, int, str, float]

# Fixed context so the same inputs give the same digits whatever the
# caller's ambient decimal context is.
DECIMAL_CONTEXT = Context(prec=28, rounding=ROUND_HALF_EVEN)

MONTHS_PER_YEAR = 12
ZERO = Decimal('0')
ONE = Decimal('1')


def to_decimal(value: Number, field_name: str = "value") -> Decimal:
    """Convert a numeric input to a finite Decimal or raise InvalidTermsError"""
    if isinstance(value, bool):
        raise InvalidTermsError(f"{field_name} must be a number, got {value!r}")
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            raise InvalidTermsError(f"{field_name} must be a number, got {value!r}")
    if not result.is_finite():
        raise InvalidTermsError(f"{field_name} must be finite, got {value!r}")
    return result


def _validate(principal: Decimal, annual_rate_percent: Decimal, tenure_months: int) -> None:
    if isinstance(tenure_months, bool) or not isinstance(tenure_months, int):
        raise InvalidTermsError(f"tenure_months must be an integer, got {tenure_months!r}")
    if tenure_months <= 0:
        raise InvalidTermsError(f"tenure_months must be at least 1, got {tenure_months}")
    if principal <= ZERO:
        raise InvalidTermsError(f"principal must be positive, got {principal}")
    if annual_rate_percent < ZERO:
        raise InvalidTermsError(f"annual interest rate cannot be negative, got {annual_rate_percent}")


def monthly_rate(annual_rate_percent: Number) -> Decimal:
    """Monthly rate as a fraction: 12 (% p.a.) -> 0.01"""
    rate = to_decimal(annual_rate_percent, "annual_interest_rate_percent")
    with localcontext(DECIMAL_CONTEXT):
        return rate / Decimal(MONTHS_PER_YEAR * 100)


def compute_installment(
    principal: Number,
    annual_rate_percent: Number,
    tenure_months: int
) -> Decimal:
    """
    Compute the equal monthly installment for a reducing-balance loan.

    EMI = P * r * (1 + r)^n / ((1 + r)^n - 1), with r = rate / 1200.
    An interest-free loan is split straight-line: P / n.

    Args:
        principal: Amount lent, must be positive
        annual_rate_percent: Annual rate in percent (12 means 12% p.a.), >= 0
        tenure_months: Number of monthly installments, >= 1

    Returns:
        Installment at full precision (not rounded)

    Raises:
        InvalidTermsError: If any input is out of range
    """
    principal = to_decimal(principal, "principal")
    annual_rate_percent = to_decimal(annual_rate_percent, "annual_interest_rate_percent")
    _validate(principal, annual_rate_percent, tenure_months)

    rate = monthly_rate(annual_rate_percent)

    with localcontext(DECIMAL_CONTEXT):
        if rate == ZERO:
            return principal / Decimal(tenure_months)

        factor = (ONE + rate) ** tenure_months
        return principal * rate * factor / (factor - ONE)


def total_payable(installment: Number, tenure_months: int) -> Decimal:
    """Sum of all installments over the tenure"""
    with localcontext(DECIMAL_CONTEXT):
        return to_decimal(installment, "installment") * Decimal(tenure_months)


def add_months(start_date: date, months: int) -> date:
    """Add months to a date, clamping to the last day of shorter months"""
    month = start_date.month - 1 + months
    year = start_date.year + month // 12
    month = month % 12 + 1
    day = min(start_date.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


@dataclass(frozen=True)
class LoanTerms:
    """Loan terms fixed at creation"""
    principal_amount: Decimal
    annual_interest_rate_percent: Decimal   # e.g. Decimal('12') for 12% p.a.
    tenure_months: int

    def __post_init__(self):
        principal = to_decimal(self.principal_amount, "principal")
        rate = to_decimal(self.annual_interest_rate_percent, "annual_interest_rate_percent")
        _validate(principal, rate, self.tenure_months)

        object.__setattr__(self, 'principal_amount', principal)
        object.__setattr__(self, 'annual_interest_rate_percent', rate)

    @property
    def monthly_rate(self) -> Decimal:
        return monthly_rate(self.annual_interest_rate_percent)

    @property
    def is_interest_free(self) -> bool:
        return self.annual_interest_rate_percent == ZERO

    def installment(self) -> Decimal:
        """Installment for these terms (see compute_installment)"""
        return compute_installment(
            self.principal_amount,
            self.annual_interest_rate_percent,
            self.tenure_months
        )

    def total_interest(self, installment: Number) -> Decimal:
        """Interest paid over the life of the loan at the given installment"""
        with localcontext(DECIMAL_CONTEXT):
            return total_payable(installment, self.tenure_months) - self.principal_amount
