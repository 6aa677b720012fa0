"""
Audit log, user notifications and the invoice payment handlers
"""
import logging
from decimal import Decimal
from enum import Enum

from sqlalchemy import func

from models import db, Notification, PlatformUser, SystemLog

logger = logging.getLogger(__name__)


class LogLevel(Enum):
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


class NotificationType(Enum):
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


PAYMENT_FAILED_MESSAGE = "Houve um problema com seu pagamento. Verifique seus dados de cobrança."


def format_amount(amount):
    """Smallest currency unit (cents) to a two decimal major unit string."""
    return f"{Decimal(amount or 0) / 100:.2f}"


class UserDirectory:
    """
    Maps a billing email to the platform user id. Billing customers and platform users only share the email.
    """

    def resolve_email_to_user_id(self, email):
        user = PlatformUser.query.filter(func.lower(PlatformUser.email) == email.lower()).first()
        return user.id if user else None


class AuditLog:

    @staticmethod
    def record(level, message, context=None):
        """
        Append an entry to the system log. Errors propagate so the delivery gets retried.
        """
        entry = SystemLog(level=LogLevel(level).value, message=message, context=context or {})
        db.session.add(entry)
        db.session.commit()
        return entry


class Notifier:
    """
    Best-effort inbox notifications, a failure here never fails the webhook.
    """

    def __init__(self, user_directory):
        self.user_directory = user_directory

    def notify_email(self, email, title, message, notification_type):
        try:
            user_id = self.user_directory.resolve_email_to_user_id(email)
            if not user_id:
                logger.info("No platform user for email - email=%s", email)
                return None

            notification = Notification(
                user_id=user_id,
                title=title,
                message=message,
                type=NotificationType(notification_type).value,
            )
            db.session.add(notification)
            db.session.commit()
            return notification
        except Exception:
            db.session.rollback()
            logger.exception("Failed to create notification - email=%s title=%s", email, title)
            return None


class PaymentEventHandler:
    """
    Handles invoice.payment_succeeded and invoice.payment_failed.
    """

    def __init__(self, billing_client, notifier, audit_log):
        self.billing_client = billing_client
        self.notifier = notifier
        self.audit_log = audit_log

    def _resolve_email(self, event, invoice):
        customer_id = invoice.get("customer")
        email = self.billing_client.get_customer_email(customer_id) if customer_id else None
        if not email:
            logger.info("No customer email found - customer=%s", customer_id)
            self.audit_log.record(LogLevel.INFO.value, "Customer without email", {
                "customer_id": customer_id,
                "event_type": event["type"],
                "webhook_event_id": event["id"],
            })
        return email

    def handle_payment_succeeded(self, event):
        invoice = event["data"]["object"]
        logger.info("Handling payment succeeded - invoice=%s customer=%s", invoice.get("id"), invoice.get("customer"))

        email = self._resolve_email(event, invoice)
        if not email:
            return

        self.audit_log.record(LogLevel.INFO.value, "Payment succeeded", {
            "customer_email": email,
            "amount": invoice.get("amount_paid"),
            "invoice_id": invoice.get("id"),
            "webhook_event_id": event["id"],
        })
        self.notifier.notify_email(
            email,
            "Pagamento Confirmado",
            f"Pagamento de R$ {format_amount(invoice.get('amount_paid'))} processado com sucesso!",
            NotificationType.SUCCESS.value,
        )
        logger.info("Payment succeeded processed - invoice=%s", invoice.get("id"))

    def handle_payment_failed(self, event):
        invoice = event["data"]["object"]
        logger.info("Handling payment failed - invoice=%s customer=%s", invoice.get("id"), invoice.get("customer"))

        email = self._resolve_email(event, invoice)
        if not email:
            return

        # the provider's failure reason is kept out of the user's inbox
        self.audit_log.record(LogLevel.WARN.value, "Payment failed", {
            "customer_email": email,
            "amount": invoice.get("amount_due"),
            "invoice_id": invoice.get("id"),
            "webhook_event_id": event["id"],
        })
        self.notifier.notify_email(
            email,
            "Problema no Pagamento",
            PAYMENT_FAILED_MESSAGE,
            NotificationType.ERROR.value,
        )
        logger.info("Payment failed processed - invoice=%s", invoice.get("id"))
