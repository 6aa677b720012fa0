"""
Stripe webhook event handlers for the app
"""
import logging
from enum import Enum

import stripe

from config import ConfigurationError
from helpers import ResponseHelper, CORS_HEADERS
from models import db
from notifier import LogLevel

logger = logging.getLogger(__name__)


class EventCategory(Enum):
    SUBSCRIPTION = "subscription"
    PAYMENT_SUCCEEDED = "payment_succeeded"
    PAYMENT_FAILED = "payment_failed"
    UNHANDLED = "unhandled"


class StripeEventType(Enum):
    SUBSCRIPTION_CREATED = "customer.subscription.created"
    SUBSCRIPTION_UPDATED = "customer.subscription.updated"
    SUBSCRIPTION_DELETED = "customer.subscription.deleted"
    INVOICE_PAYMENT_SUCCEEDED = "invoice.payment_succeeded"
    INVOICE_PAYMENT_FAILED = "invoice.payment_failed"


EVENT_CATEGORIES = {
    StripeEventType.SUBSCRIPTION_CREATED.value: EventCategory.SUBSCRIPTION,
    StripeEventType.SUBSCRIPTION_UPDATED.value: EventCategory.SUBSCRIPTION,
    StripeEventType.SUBSCRIPTION_DELETED.value: EventCategory.SUBSCRIPTION,
    StripeEventType.INVOICE_PAYMENT_SUCCEEDED.value: EventCategory.PAYMENT_SUCCEEDED,
    StripeEventType.INVOICE_PAYMENT_FAILED.value: EventCategory.PAYMENT_FAILED,
}


def classify(event_type) -> EventCategory:
    """Exact match on the event type, anything unknown is UNHANDLED."""
    return EVENT_CATEGORIES.get(event_type, EventCategory.UNHANDLED)


class StripeWebhookHandler:

    def __init__(self, settings, billing_client, projector, payment_handler, audit_log):
        self.settings = settings
        self.billing_client = billing_client
        self.projector = projector
        self.payment_handler = payment_handler
        self.audit_log = audit_log

    def process_webhook(self, payload: bytes, signature):
        """
        Main webhook processor: verifies the delivery, then routes it by event type.
        Any failure after verification is answered with a 500 so Stripe redelivers.
        """
        logger.info("Webhook received")
        try:
            self.settings.require()
        except ConfigurationError as e:
            logger.error("Webhook misconfigured - %s", e)
            return ResponseHelper.error(str(e), 500, CORS_HEADERS)

        if not signature:
            logger.warning("Webhook signature verification failed - missing stripe-signature header")
            return ResponseHelper.text("Webhook Error: Missing stripe-signature header", 400, CORS_HEADERS)

        try:
            event = self.billing_client.construct_event(payload, signature)
        except (stripe.SignatureVerificationError, ValueError) as e:
            logger.warning("Webhook signature verification failed - %s", e)
            return ResponseHelper.text(f"Webhook Error: {e}", 400, CORS_HEADERS)

        try:
            logger.info("Event verified - type=%s id=%s", event.get("type"), event.get("id"))
            self._dispatch(event)
        except Exception as e:
            db.session.rollback()
            logger.exception("ERROR in webhook - type=%s id=%s", event.get("type"), event.get("id"))
            return ResponseHelper.error(str(e), 500, CORS_HEADERS)

        return ResponseHelper.success({"received": True}, CORS_HEADERS)

    def _dispatch(self, event):
        """
        Route event to appropriate handler based on event type
        """
        event_type = event.get("type")
        category = classify(event_type)

        if category is EventCategory.SUBSCRIPTION:
            deleted = event_type == StripeEventType.SUBSCRIPTION_DELETED.value
            self.projector.handle(event, deleted=deleted)
        elif category is EventCategory.PAYMENT_SUCCEEDED:
            self.payment_handler.handle_payment_succeeded(event)
        elif category is EventCategory.PAYMENT_FAILED:
            self.payment_handler.handle_payment_failed(event)
        else:
            # unknown types are acknowledged and only traced
            logger.info("Unhandled event type - type=%s", event_type)
            self.audit_log.record(LogLevel.INFO.value, "Unhandled event type", {
                "event_type": event_type,
                "webhook_event_id": event.get("id"),
            })
