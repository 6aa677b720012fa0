"""
Thin wrapper around the Stripe API calls the webhook pipeline needs
"""
import json
import logging

import stripe

logger = logging.getLogger(__name__)


class StripeBillingClient:
    """
    Verifies webhook deliveries and looks up customers and prices on Stripe.
    """

    def __init__(self, settings):
        self.settings = settings

    def construct_event(self, payload: bytes, signature: str):
        """
        Verify the signature over the raw body and parse the event into a plain dict.
        Raises stripe.SignatureVerificationError or ValueError on bad input.
        """
        if hasattr(payload, "decode"):
            payload = payload.decode("utf-8")
        stripe.WebhookSignature.verify_header(
            payload,
            signature,
            self.settings.webhook_secret,
            self.settings.signature_tolerance,
        )
        event = json.loads(payload)
        if not isinstance(event, dict):
            raise ValueError("Event payload is not a JSON object")
        return event

    def get_customer_email(self, customer_id):
        customer = stripe.Customer.retrieve(
            customer_id,
            api_key=self.settings.stripe_secret_key,
            stripe_version=self.settings.stripe_api_version,
        )
        # deleted customers come back without an email
        return getattr(customer, "email", None)

    def get_price_unit_amount(self, price_id) -> int:
        price = stripe.Price.retrieve(
            price_id,
            api_key=self.settings.stripe_secret_key,
            stripe_version=self.settings.stripe_api_version,
        )
        return getattr(price, "unit_amount", None) or 0
