"""
Notification Module

Tells a borrower about a newly recorded loan. The capability is
notify(borrower_contact, loan_summary) -> success/failure: delivery problems
are recorded and reported, never raised to the caller.
"""

from decimal import Decimal
from datetime import datetime, timezone
from dataclasses import dataclass
from email.message import EmailMessage
from typing import Any, Dict, Optional, Tuple
from enum import Enum
from abc import ABC, abstractmethod
import asyncio
import html
import smtplib
import uuid

import requests

from .currency import DEFAULT_PRECISION, format_currency, to_display
from .storage import StorageInterface, StorageRecord
from .audit import AuditTrail, AuditEventType
from .logging_config import get_logger, log_action


class NotificationChannel(Enum):
    """Available notification channels"""
    EMAIL = "email"
    WEBHOOK = "webhook"
    LOG = "log"


class NotificationStatus(Enum):
    """Delivery outcome of a notification"""
    SENT = "sent"
    FAILED = "failed"


@dataclass(frozen=True)
class LoanSummary:
    """What the borrower is told about their loan"""
    borrower_name: str
    lender_name: Optional[str]
    principal_amount: Decimal
    annual_interest_rate_percent: Decimal
    tenure_months: int
    installment_amount: Decimal

    @classmethod
    def from_loan(cls, loan, precision: int = DEFAULT_PRECISION) -> 'LoanSummary':
        return cls(
            borrower_name=loan.borrower.name,
            lender_name=loan.lender_name,
            principal_amount=loan.terms.principal_amount,
            annual_interest_rate_percent=loan.terms.annual_interest_rate_percent,
            tenure_months=loan.terms.tenure_months,
            installment_amount=to_display(loan.installment_amount, precision)
        )


@dataclass
class Notification(StorageRecord):
    """Individual notification instance"""
    loan_id: Optional[str]
    channel: NotificationChannel
    recipient_address: str
    subject: str
    body: str
    status: NotificationStatus = NotificationStatus.FAILED
    sent_at: Optional[datetime] = None
    failed_reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'created_at': self.created_at.isoformat(),
            'updated_at': self.updated_at.isoformat(),
            'loan_id': self.loan_id,
            'channel': self.channel.value,
            'recipient_address': self.recipient_address,
            'subject': self.subject,
            'body': self.body,
            'status': self.status.value,
            'sent_at': self.sent_at.isoformat() if self.sent_at else None,
            'failed_reason': self.failed_reason
        }


def render_loan_details(
    summary: LoanSummary,
    currency_symbol: str = "₹",
    precision: int = DEFAULT_PRECISION
) -> Tuple[str, str]:
    """Subject and HTML body of the loan details email"""
    name = html.escape(summary.borrower_name)
    lender = html.escape(summary.lender_name or "your lender")
    principal = html.escape(format_currency(summary.principal_amount, currency_symbol, precision))
    emi = html.escape(format_currency(summary.installment_amount, currency_symbol, precision))

    body = (
        f"<h2>Hello {name},</h2>\n"
        f"<p>You borrowed money from <strong>{lender}</strong>. "
        f"Here are your loan details:</p>\n"
        f"<ul>\n"
        f"  <li><strong>Principal:</strong> {principal}</li>\n"
        f"  <li><strong>Interest Rate:</strong> {summary.annual_interest_rate_percent}%</li>\n"
        f"  <li><strong>Tenure:</strong> {summary.tenure_months} months</li>\n"
        f"  <li><strong>EMI:</strong> {emi}</li>\n"
        f"</ul>\n"
        f"<p>Thank you for choosing our lending service!</p>\n"
    )
    return "Your Loan Details", body


class ChannelProvider(ABC):
    """Abstract base class for notification channel providers"""

    channel: NotificationChannel

    @abstractmethod
    async def send(self, notification: Notification) -> bool:
        """Send notification via this channel. Returns True if successful."""


class LogChannelProvider(ChannelProvider):
    """Logs notifications instead of delivering them (development)"""

    channel = NotificationChannel.LOG

    def __init__(self, logger=None):
        self.logger = logger or get_logger("lending.notifications")

    async def send(self, notification: Notification) -> bool:
        self.logger.info(
            f"Notification to {notification.recipient_address}: {notification.subject}"
        )
        return True


class EmailChannelProvider(ChannelProvider):
    """Delivers notifications as HTML email over SMTP"""

    channel = NotificationChannel.EMAIL

    def __init__(
        self,
        host: str,
        port: int = 587,
        username: str = "",
        password: str = "",
        use_tls: bool = True,
        sender_name: str = "Loan Service",
        sender_address: Optional[str] = None,
        timeout: float = 10.0
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.sender_name = sender_name
        self.sender_address = sender_address or username
        self.timeout = timeout
        self.logger = get_logger("lending.notifications.email")

    def build_message(self, notification: Notification) -> EmailMessage:
        message = EmailMessage()
        message['From'] = f'"{self.sender_name}" <{self.sender_address}>'
        message['To'] = notification.recipient_address
        message['Subject'] = notification.subject
        message.set_content("Your loan details are attached as HTML.")
        message.add_alternative(notification.body, subtype="html")
        return message

    def _deliver(self, message: EmailMessage) -> None:
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
            if self.use_tls:
                smtp.starttls()
            if self.username:
                smtp.login(self.username, self.password)
            smtp.send_message(message)

    async def send(self, notification: Notification) -> bool:
        message = self.build_message(notification)
        try:
            await asyncio.to_thread(self._deliver, message)
        except (smtplib.SMTPException, OSError) as e:
            self.logger.error(f"Email to {notification.recipient_address} failed: {e}")
            notification.failed_reason = str(e)
            return False
        return True


class WebhookChannelProvider(ChannelProvider):
    """Posts notifications as JSON to an external service"""

    channel = NotificationChannel.WEBHOOK

    def __init__(self, url: str, timeout: float = 5.0):
        self.url = url
        self.timeout = timeout
        self.logger = get_logger("lending.notifications.webhook")

    def _post(self, payload: Dict[str, Any]) -> requests.Response:
        return requests.post(
            self.url,
            json=payload,
            timeout=self.timeout,
            headers={"Content-Type": "application/json"}
        )

    async def send(self, notification: Notification) -> bool:
        payload = {
            "notification_id": notification.id,
            "loan_id": notification.loan_id,
            "recipient": notification.recipient_address,
            "subject": notification.subject,
            "body": notification.body,
            "timestamp": notification.created_at.isoformat()
        }
        try:
            response = await asyncio.to_thread(self._post, payload)
        except requests.RequestException as e:
            self.logger.error(f"Webhook send failed: {e}")
            notification.failed_reason = str(e)
            return False

        if not response.ok:
            notification.failed_reason = f"Webhook returned HTTP {response.status_code}"
            return False
        return True


def create_provider(config) -> ChannelProvider:
    """Build the channel provider named by configuration"""
    channel = NotificationChannel(config.notification_channel.lower())

    if channel == NotificationChannel.EMAIL:
        return EmailChannelProvider(
            host=config.smtp_host,
            port=config.smtp_port,
            username=config.smtp_username,
            password=config.smtp_password,
            use_tls=config.smtp_use_tls,
            sender_name=config.mail_sender_name,
            sender_address=config.mail_sender_address,
            timeout=config.smtp_timeout
        )
    if channel == NotificationChannel.WEBHOOK:
        if not config.webhook_url:
            raise ValueError("webhook_url must be set for the webhook notification channel")
        return WebhookChannelProvider(config.webhook_url, timeout=config.webhook_timeout)
    return LogChannelProvider()


class NotificationService:
    """Sends borrower notifications and keeps a record of each attempt"""

    def __init__(
        self,
        storage: StorageInterface,
        provider: ChannelProvider,
        audit_trail: Optional[AuditTrail] = None,
        currency_symbol: str = "₹",
        display_precision: int = DEFAULT_PRECISION
    ):
        self.storage = storage
        self.provider = provider
        self.audit = audit_trail or AuditTrail(storage)
        self.currency_symbol = currency_symbol
        self.display_precision = display_precision
        self.logger = get_logger("lending.notifications")
        self.notifications_table = "notifications"

    async def notify(
        self,
        borrower_email: str,
        summary: LoanSummary,
        loan_id: Optional[str] = None
    ) -> bool:
        """
        Send loan details to a borrower

        Args:
            borrower_email: Recipient address
            summary: Loan details to send
            loan_id: Loan the notification is about

        Returns:
            True if the provider accepted the notification
        """
        subject, body = render_loan_details(summary, self.currency_symbol, self.display_precision)
        now = datetime.now(timezone.utc)

        notification = Notification(
            id=str(uuid.uuid4()),
            created_at=now,
            updated_at=now,
            loan_id=loan_id,
            channel=self.provider.channel,
            recipient_address=borrower_email,
            subject=subject,
            body=body
        )

        success = await self.provider.send(notification)

        if success:
            notification.status = NotificationStatus.SENT
            notification.sent_at = datetime.now(timezone.utc)
        else:
            notification.status = NotificationStatus.FAILED
            notification.failed_reason = notification.failed_reason or "Provider send failed"
        notification.touch()

        self.storage.save(self.notifications_table, notification.id, notification.to_dict())

        self.audit.log_event(
            AuditEventType.NOTIFICATION_SENT if success else AuditEventType.NOTIFICATION_FAILED,
            "notification",
            notification.id,
            {
                "loan_id": loan_id,
                "channel": notification.channel.value,
                "status": notification.status.value
            }
        )
        log_action(
            self.logger, "info" if success else "warning",
            f"Borrower notification {notification.status.value}",
            action="notify_borrower", resource=f"loan:{loan_id}",
            details={"channel": notification.channel.value, "reason": notification.failed_reason}
        )

        return success

    async def notify_borrower(self, loan) -> bool:
        """Send the loan details of a newly created loan to its borrower"""
        if not loan.borrower.email:
            self.logger.info(f"Loan {loan.id} has no borrower email, skipping notification")
            return False
        summary = LoanSummary.from_loan(loan, self.display_precision)
        return await self.notify(loan.borrower.email, summary, loan_id=loan.id)

    def get_notifications(self, loan_id: str) -> list:
        """Stored notification records for a loan"""
        return self.storage.find(self.notifications_table, {"loan_id": loan_id})
