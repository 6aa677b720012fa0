"""
Projects Stripe subscription objects onto the local subscribers table
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from sqlalchemy.dialects import postgresql, sqlite

from models import db, Subscriber
from notifier import LogLevel, NotificationType

logger = logging.getLogger(__name__)

PLUS_MAX_AMOUNT = 2999
PRO_MAX_AMOUNT = 5999

UPSERT_DIALECTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class SubscriptionTier(Enum):
    PLUS = "plus"
    PRO = "pro"


class SubscriptionStatus(Enum):
    ACTIVE = "active"
    TRIALING = "trialing"
    PAST_DUE = "past_due"
    CANCELED = "canceled"
    UNPAID = "unpaid"
    INCOMPLETE = "incomplete"
    INCOMPLETE_EXPIRED = "incomplete_expired"


def tier_for_amount(amount) -> Optional[SubscriptionTier]:
    """
    Map a monthly unit amount in cents to a tier. Amounts above the pro bracket get no tier.
    """
    if amount <= PLUS_MAX_AMOUNT:
        return SubscriptionTier.PLUS
    if amount <= PRO_MAX_AMOUNT:
        return SubscriptionTier.PRO
    # TODO: no bracket above 5999 yet, waiting on product for a higher priced plan
    return None


@dataclass
class SubscriptionProjection:
    email: str
    stripe_customer_id: str
    subscribed: bool
    subscription_tier: Optional[SubscriptionTier]
    subscription_end: Optional[datetime]

    def as_row(self, now):
        return {
            "email": self.email,
            "stripe_customer_id": self.stripe_customer_id,
            "subscribed": self.subscribed,
            "subscription_tier": self.subscription_tier.value if self.subscription_tier else None,
            "subscription_end": self.subscription_end,
            "updated_at": now,
        }


def upsert_subscriber(row):
    """
    Single INSERT ... ON CONFLICT (email) DO UPDATE, safe to repeat and to race.
    """
    dialect = db.engine.dialect.name
    insert = UPSERT_DIALECTS.get(dialect)
    if insert is None:
        raise RuntimeError(f"Atomic subscriber upsert is not supported on {dialect}")

    statement = insert(Subscriber).values(**row)
    statement = statement.on_conflict_do_update(
        index_elements=[Subscriber.email],
        set_={column: statement.excluded[column] for column in row if column != "email"},
    )
    db.session.execute(statement)
    db.session.commit()


def _period_end(subscription):
    period_end = subscription.get("current_period_end")
    if period_end is None:
        # newer API versions moved the period onto the subscription items
        items = _line_items(subscription)
        period_end = items[0].get("current_period_end") if items else None
    if period_end is None:
        return None
    return datetime.fromtimestamp(period_end, tz=timezone.utc)


def _line_items(subscription):
    # subscription["items"], not .items, which is the dict method on Stripe objects
    items = subscription.get("items") or {}
    return items.get("data") or []


class SubscriptionProjector:
    """
    Turns one customer.subscription.* event into the current subscriber row, then audits and notifies.
    """

    def __init__(self, billing_client, notifier, audit_log):
        self.billing_client = billing_client
        self.notifier = notifier
        self.audit_log = audit_log

    def compute(self, subscription, email, deleted=False):
        """
        Derive the subscriber row from the subscription object alone, no stored state is consulted.
        """
        is_active = not deleted and subscription.get("status") == SubscriptionStatus.ACTIVE.value

        tier = None
        if is_active:
            items = _line_items(subscription)
            if items:
                amount = self.billing_client.get_price_unit_amount(items[0]["price"]["id"])
                tier = tier_for_amount(amount)

        return SubscriptionProjection(
            email=email,
            stripe_customer_id=subscription.get("customer"),
            subscribed=is_active,
            subscription_tier=tier,
            subscription_end=_period_end(subscription) if is_active else None,
        )

    def handle(self, event, deleted=False):
        subscription = event["data"]["object"]
        customer_id = subscription.get("customer")
        logger.info("Handling subscription event - type=%s customer=%s status=%s",
                    event["type"], customer_id, subscription.get("status"))

        email = self.billing_client.get_customer_email(customer_id) if customer_id else None
        if not email:
            logger.info("No customer email found - customer=%s", customer_id)
            self.audit_log.record(LogLevel.INFO.value, "Customer without email", {
                "customer_id": customer_id,
                "event_type": event["type"],
                "webhook_event_id": event["id"],
            })
            return None

        projection = self.compute(subscription, email, deleted=deleted)
        upsert_subscriber(projection.as_row(datetime.now(timezone.utc)))

        tier = projection.subscription_tier.value if projection.subscription_tier else None
        self.audit_log.record(LogLevel.INFO.value, f"Subscription {event['type']}", {
            "customer_email": email,
            "subscription_tier": tier,
            "subscription_status": subscription.get("status"),
            "webhook_event_id": event["id"],
        })

        if not deleted:
            if projection.subscribed:
                message = f"Sua assinatura {tier} está ativa!" if tier else "Sua assinatura está ativa!"
                self.notifier.notify_email(email, "Assinatura Atualizada", message, NotificationType.SUCCESS.value)
            else:
                self.notifier.notify_email(email, "Assinatura Atualizada", "Sua assinatura foi cancelada.",
                                           NotificationType.WARNING.value)

        logger.info("Subscription event processed successfully - email=%s subscribed=%s tier=%s",
                    email, projection.subscribed, tier)
        return projection
