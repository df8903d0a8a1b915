"""
Loan Module

Handles loan creation, installment payments and loan queries on top of the
amortization calculator and the payment ledger. The stored loan record is the
single source of truth for a loan's repayment state.
"""

from decimal import Decimal
from datetime import datetime, timezone, date
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple
from enum import Enum
import threading
import uuid
import weakref

from .amortization import LoanTerms
from .ledger import (
    LoanState, LoanStatus, PaymentRecord, ScheduleEntry,
    apply_payment, open_loan_state, project_schedule
)
from .storage import StorageInterface, StorageRecord
from .audit import AuditTrail, AuditEventType
from .exceptions import LoanAlreadyCompletedError, LoanNotFoundError, StaleLoanStateError
from .logging_config import get_logger, log_action


class LoanType(Enum):
    """Which side of the loan the tracking user is on"""
    BORROWED = "borrowed"
    LENT = "lent"


@dataclass(frozen=True)
class BorrowerContact:
    """Who to notify about a loan"""
    name: str
    email: Optional[str] = None


@dataclass
class Loan(StorageRecord):
    """Loan record: fixed terms and installment plus current repayment state"""
    user_id: str
    loan_type: LoanType
    borrower: BorrowerContact
    terms: LoanTerms
    installment_amount: Decimal     # Fixed at creation, never recomputed
    state: LoanState
    lender_name: Optional[str] = None
    version: int = 0

    @property
    def status(self) -> LoanStatus:
        return self.state.status

    @property
    def is_active(self) -> bool:
        return self.state.is_active

    @property
    def remaining_installments(self) -> int:
        return self.terms.tenure_months - self.state.paid_installments


@dataclass
class LoanPayment(StorageRecord):
    """Stored payment: a PaymentRecord plus who owns the loan"""
    user_id: str
    record: PaymentRecord

    @property
    def loan_id(self) -> str:
        return self.record.loan_id


class LoanManager:
    """
    Manages loan lifecycle from creation through completion
    """

    def __init__(self, storage: StorageInterface, audit_trail: AuditTrail):
        self.storage = storage
        self.audit_trail = audit_trail
        self.logger = get_logger("lending.loans")

        self.loans_table = "loans"
        self.payments_table = "loan_payments"

        # At most one payment in flight per loan; an entry lives only while
        # some payment holds or waits on its lock
        self._loan_locks = weakref.WeakValueDictionary()
        self._locks_guard = threading.Lock()

    def create_loan(
        self,
        user_id: str,
        terms: LoanTerms,
        borrower_name: str,
        borrower_email: Optional[str] = None,
        lender_name: Optional[str] = None,
        loan_type: LoanType = LoanType.BORROWED,
        originated_on: Optional[date] = None
    ) -> Loan:
        """
        Create a new loan and fix its installment

        Args:
            user_id: User tracking the loan
            terms: Principal, rate and tenure
            borrower_name: Borrower display name
            borrower_email: Borrower email for notifications
            lender_name: Lender display name
            loan_type: Whether the user borrowed or lent the money
            originated_on: Origination date (defaults to today, UTC)

        Returns:
            Created Loan object
        """
        now = datetime.now(timezone.utc)
        if originated_on is None:
            originated_on = now.date()

        loan = Loan(
            id=str(uuid.uuid4()),
            created_at=now,
            updated_at=now,
            user_id=user_id,
            loan_type=loan_type,
            borrower=BorrowerContact(name=borrower_name, email=borrower_email),
            terms=terms,
            installment_amount=terms.installment(),
            state=open_loan_state(terms, originated_on),
            lender_name=lender_name
        )

        self._save_loan(loan)

        self.audit_trail.log_event(
            event_type=AuditEventType.LOAN_CREATED,
            entity_type="loan",
            entity_id=loan.id,
            user_id=user_id,
            metadata={
                "principal_amount": terms.principal_amount,
                "annual_interest_rate_percent": terms.annual_interest_rate_percent,
                "tenure_months": terms.tenure_months,
                "installment_amount": loan.installment_amount,
                "originated_on": originated_on.isoformat()
            }
        )
        log_action(
            self.logger, "info", "Loan created",
            user_id=user_id, action="create_loan", resource=f"loan:{loan.id}",
            details={"tenure_months": terms.tenure_months, "loan_type": loan_type.value}
        )

        return loan

    def make_payment(
        self,
        loan_id: str,
        payment_date: Optional[date] = None
    ) -> Tuple[LoanPayment, Loan]:
        """
        Pay the next installment of a loan

        Args:
            loan_id: Loan ID
            payment_date: Date of payment (defaults to today, UTC)

        Returns:
            Tuple of (stored LoanPayment, updated Loan)

        Raises:
            LoanNotFoundError: If the loan does not exist
            LoanAlreadyCompletedError: If the loan is already completed
            StaleLoanStateError: If the loan changed underneath this payment
        """
        with self._lock_for(loan_id):
            loan = self._require_loan(loan_id)
            loaded_version = loan.version

            try:
                record, new_state = apply_payment(
                    loan.state, loan.installment_amount, loan.terms,
                    payment_date=payment_date, loan_id=loan.id
                )
            except LoanAlreadyCompletedError:
                log_action(
                    self.logger, "warning", "Payment rejected: loan already completed",
                    user_id=loan.user_id, action="make_payment", resource=f"loan:{loan.id}"
                )
                raise

            now = datetime.now(timezone.utc)
            payment = LoanPayment(
                id=str(uuid.uuid4()),
                created_at=now,
                updated_at=now,
                user_id=loan.user_id,
                record=record
            )
            loan.state = new_state
            loan.touch()

            with self.storage.atomic():
                self._save_loan(loan, expected_version=loaded_version)
                self.storage.save(self.payments_table, payment.id, self._payment_to_dict(payment))

            self.audit_trail.log_event(
                event_type=AuditEventType.LOAN_PAYMENT_MADE,
                entity_type="loan",
                entity_id=loan.id,
                user_id=loan.user_id,
                metadata={
                    "payment_id": payment.id,
                    "installment_number": record.installment_number,
                    "interest_component": record.interest_component,
                    "principal_component": record.principal_component,
                    "remaining_principal": record.resulting_remaining_principal
                }
            )
            if new_state.is_completed:
                self.audit_trail.log_event(
                    event_type=AuditEventType.LOAN_COMPLETED,
                    entity_type="loan",
                    entity_id=loan.id,
                    user_id=loan.user_id,
                    metadata={"residual_forgiven": record.residual_forgiven}
                )

            log_action(
                self.logger, "info",
                f"Installment {record.installment_number}/{loan.terms.tenure_months} paid",
                user_id=loan.user_id, action="make_payment", resource=f"loan:{loan.id}",
                details={"status": new_state.status.value}
            )

        return payment, loan

    def get_loan(self, loan_id: str) -> Optional[Loan]:
        """Get loan by ID"""
        loan_dict = self.storage.load(self.loans_table, loan_id)
        if loan_dict:
            return self._loan_from_dict(loan_dict)
        return None

    def list_user_loans(self, user_id: str, status: Optional[LoanStatus] = None) -> List[Loan]:
        """Get all loans tracked by a user, oldest first"""
        filters = {"user_id": user_id}
        if status:
            filters["status"] = status.value
        loans = [self._loan_from_dict(data) for data in self.storage.find(self.loans_table, filters)]
        loans.sort(key=lambda loan: loan.created_at)
        return loans

    def get_loan_payments(self, loan_id: str) -> List[LoanPayment]:
        """Payment history for a loan in installment order"""
        self._require_loan(loan_id)
        payments = [
            self._payment_from_dict(data)
            for data in self.storage.find(self.payments_table, {"loan_id": loan_id})
        ]
        payments.sort(key=lambda p: p.record.installment_number)
        return payments

    def get_user_payments(self, user_id: str) -> List[LoanPayment]:
        """Payments across all of a user's loans, most recent first"""
        payments = [
            self._payment_from_dict(data)
            for data in self.storage.find(self.payments_table, {"user_id": user_id})
        ]
        payments.sort(key=lambda p: (p.record.payment_date, p.created_at), reverse=True)
        return payments

    def get_schedule(self, loan_id: str) -> List[ScheduleEntry]:
        """Projected repayment schedule from origination"""
        loan = self._require_loan(loan_id)
        return project_schedule(loan.terms, loan.installment_amount, loan.state.originated_on)

    def _require_loan(self, loan_id: str) -> Loan:
        loan = self.get_loan(loan_id)
        if not loan:
            raise LoanNotFoundError(loan_id)
        return loan

    def _lock_for(self, loan_id: str) -> threading.Lock:
        with self._locks_guard:
            return self._loan_locks.setdefault(loan_id, threading.Lock())

    def _save_loan(self, loan: Loan, expected_version: Optional[int] = None) -> None:
        """Save loan, refusing to overwrite a newer version"""
        if expected_version is not None:
            stored = self.storage.load(self.loans_table, loan.id)
            if stored and stored.get('version', 0) != expected_version:
                raise StaleLoanStateError(
                    f"Loan {loan.id} changed since it was loaded "
                    f"(version {stored.get('version')} != {expected_version})"
                )
        loan.version += 1
        self.storage.save(self.loans_table, loan.id, self._loan_to_dict(loan))

    def _loan_to_dict(self, loan: Loan) -> Dict:
        """Convert loan to dictionary"""
        state = loan.state
        return {
            'id': loan.id,
            'created_at': loan.created_at.isoformat(),
            'updated_at': loan.updated_at.isoformat(),
            'user_id': loan.user_id,
            'loan_type': loan.loan_type.value,
            'borrower_name': loan.borrower.name,
            'borrower_email': loan.borrower.email,
            'lender_name': loan.lender_name,
            'terms': {
                'principal_amount': str(loan.terms.principal_amount),
                'annual_interest_rate_percent': str(loan.terms.annual_interest_rate_percent),
                'tenure_months': loan.terms.tenure_months
            },
            'installment_amount': str(loan.installment_amount),
            'status': state.status.value,
            'remaining_principal': str(state.remaining_principal),
            'paid_installments': state.paid_installments,
            'next_due_date': state.next_due_date.isoformat() if state.next_due_date else None,
            'originated_on': state.originated_on.isoformat(),
            'version': loan.version
        }

    def _loan_from_dict(self, data: Dict) -> Loan:
        """Convert dictionary to loan"""
        terms_data = data['terms']
        terms = LoanTerms(
            principal_amount=Decimal(terms_data['principal_amount']),
            annual_interest_rate_percent=Decimal(terms_data['annual_interest_rate_percent']),
            tenure_months=terms_data['tenure_months']
        )

        next_due = data.get('next_due_date')
        state = LoanState(
            remaining_principal=Decimal(data['remaining_principal']),
            paid_installments=data['paid_installments'],
            next_due_date=date.fromisoformat(next_due) if next_due else None,
            status=LoanStatus(data['status']),
            originated_on=date.fromisoformat(data['originated_on'])
        )

        return Loan(
            id=data['id'],
            created_at=datetime.fromisoformat(data['created_at']),
            updated_at=datetime.fromisoformat(data['updated_at']),
            user_id=data['user_id'],
            loan_type=LoanType(data['loan_type']),
            borrower=BorrowerContact(name=data['borrower_name'], email=data.get('borrower_email')),
            terms=terms,
            installment_amount=Decimal(data['installment_amount']),
            state=state,
            lender_name=data.get('lender_name'),
            version=data.get('version', 0)
        )

    def _payment_to_dict(self, payment: LoanPayment) -> Dict:
        """Convert payment to dictionary"""
        record = payment.record
        return {
            'id': payment.id,
            'created_at': payment.created_at.isoformat(),
            'updated_at': payment.updated_at.isoformat(),
            'user_id': payment.user_id,
            'loan_id': record.loan_id,
            'installment_number': record.installment_number,
            'amount_paid': str(record.amount_paid),
            'interest_component': str(record.interest_component),
            'principal_component': str(record.principal_component),
            'resulting_remaining_principal': str(record.resulting_remaining_principal),
            'residual_forgiven': str(record.residual_forgiven),
            'payment_date': record.payment_date.isoformat()
        }

    def _payment_from_dict(self, data: Dict) -> LoanPayment:
        """Convert dictionary to payment"""
        record = PaymentRecord(
            loan_id=data['loan_id'],
            installment_number=data['installment_number'],
            amount_paid=Decimal(data['amount_paid']),
            interest_component=Decimal(data['interest_component']),
            principal_component=Decimal(data['principal_component']),
            resulting_remaining_principal=Decimal(data['resulting_remaining_principal']),
            payment_date=date.fromisoformat(data['payment_date']),
            residual_forgiven=Decimal(data.get('residual_forgiven', '0'))
        )
        return LoanPayment(
            id=data['id'],
            created_at=datetime.fromisoformat(data['created_at']),
            updated_at=datetime.fromisoformat(data['updated_at']),
            user_id=data['user_id'],
            record=record
        )
