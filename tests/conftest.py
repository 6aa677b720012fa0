import hashlib
import hmac
import json
import time
from datetime import datetime, timedelta, timezone

import pytest

from app import create_app
from billing_client import StripeBillingClient
from config import WebhookSettings
from models import db, PlatformUser

WEBHOOK_SECRET = "whsec_test_secret_key"
TEST_SETTINGS = WebhookSettings(stripe_secret_key="sk_test_xxx", webhook_secret=WEBHOOK_SECRET)


class InMemoryConfig:
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False


class FakeBillingClient(StripeBillingClient):
    """
    Real signature verification, in-memory customers and prices instead of the Stripe API.
    """

    def __init__(self, settings=TEST_SETTINGS):
        super().__init__(settings)
        self.customers = {"cus_123": "ana@example.com", "cus_456": "bruno@example.com", "cus_noemail": None}
        self.prices = {"price_plus": 2900, "price_pro": 4900}
        self.price_lookups = []

    def get_customer_email(self, customer_id):
        return self.customers.get(customer_id)

    def get_price_unit_amount(self, price_id) -> int:
        self.price_lookups.append(price_id)
        return self.prices[price_id]


def sign_payload(payload, secret=WEBHOOK_SECRET, timestamp=None):
    if timestamp is None:
        timestamp = int(time.time())
    signed_payload = f"{timestamp}.".encode("utf-8") + payload
    signature = hmac.new(secret.encode("utf-8"), signed_payload, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"


def create_event(event_id, event_type, data_object):
    return json.dumps({
        "id": event_id,
        "object": "event",
        "type": event_type,
        "data": {
            "object": data_object
        }
    }).encode("utf-8")


def create_subscription_event(event_id, event_type, customer_id, status="active", current_period_end=1735689600,
                              price_id="price_plus"):
    subscription = {
        "id": "sub_123",
        "object": "subscription",
        "customer": customer_id,
        "status": status,
        "current_period_end": current_period_end,
        "items": {
            "object": "list",
            "data": [{"id": "si_123", "object": "subscription_item", "price": {"id": price_id, "object": "price"}}]
            if price_id else []
        }
    }
    return create_event(event_id, event_type, subscription)


def create_invoice_event(event_id, event_type, customer_id, amount_paid=2900, amount_due=2900):
    return create_event(event_id, event_type, {
        "id": "in_123",
        "object": "invoice",
        "customer": customer_id,
        "amount_paid": amount_paid,
        "amount_due": amount_due,
    })


def post_webhook(client, payload, signature=None):
    headers = {"stripe-signature": signature if signature is not None else sign_payload(payload)}
    return client.post("/stripe-webhook", data=payload, headers=headers, content_type='application/json')


def create_platform_user(user_id="user_ana", email="ana@example.com"):
    db.session.add(PlatformUser(id=user_id, email=email))
    db.session.commit()
    return user_id


def make_timezone_aware(dt):
    """Convert naive datetime to UTC timezone-aware datetime, since SQLite gives out naive datetimes."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


@pytest.fixture
def billing():
    return FakeBillingClient()


@pytest.fixture
def app(billing):
    return create_app(InMemoryConfig, settings=TEST_SETTINGS, billing_client=billing)


@pytest.fixture
def client(app):
    """
    Create the test client for the app.
    """
    with app.test_client() as client:
        with app.app_context():
            db.create_all()
            yield client
            db.session.remove()
            db.drop_all()
