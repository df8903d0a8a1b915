"""
Tests for portfolio statistics
"""

from decimal import Decimal

from lending_tracker.amortization import LoanTerms
from lending_tracker.storage import InMemoryStorage
from lending_tracker.audit import AuditTrail
from lending_tracker.loans import LoanManager
from lending_tracker.reporting import compute_portfolio_stats, loan_progress


class TestPortfolioStats:

    def setup_method(self):
        storage = InMemoryStorage()
        self.manager = LoanManager(storage, AuditTrail(storage))

    def test_empty_portfolio(self):
        stats = compute_portfolio_stats([])
        assert stats.total_loans == 0
        assert stats.total_principal == Decimal('0')
        assert stats.to_dict()["total_emi"] == "0.00"

    def test_mixed_portfolio(self):
        done = self.manager.create_loan("USER001", LoanTerms(Decimal('1000'), Decimal('0'), 1), "Asha")
        self.manager.create_loan("USER001", LoanTerms(Decimal('12000'), Decimal('0'), 12), "Ravi")
        self.manager.create_loan("USER001", LoanTerms(Decimal('120000'), Decimal('12'), 12), "Meena")
        self.manager.make_payment(done.id)

        stats = compute_portfolio_stats(self.manager.list_user_loans("USER001"))

        assert stats.total_loans == 3
        assert stats.active_loans == 2
        assert stats.completed_loans == 1
        assert stats.total_principal == Decimal('133000')
        # Completed loans do not count towards the monthly outgo
        assert stats.to_dict()["total_emi"] == "11661.85"
        assert stats.to_dict()["total_principal"] == "133000.00"


class TestLoanProgress:

    def test_progress_fraction(self):
        storage = InMemoryStorage()
        manager = LoanManager(storage, AuditTrail(storage))
        loan = manager.create_loan("USER001", LoanTerms(Decimal('4000'), Decimal('0'), 4), "Asha")

        assert loan_progress(loan) == Decimal('0')
        _, loan = manager.make_payment(loan.id)
        assert loan_progress(loan) == Decimal('0.25')
        for _ in range(3):
            _, loan = manager.make_payment(loan.id)
        assert loan_progress(loan) == Decimal('1')
