"""
Psicoplan billing webhook service
"""
import logging

from flask import Flask

from billing_client import StripeBillingClient
from config import Config, WebhookSettings
from models import db
from notifier import AuditLog, Notifier, PaymentEventHandler, UserDirectory
from routes import api_bp
from stripe_webhook_handler import StripeWebhookHandler
from subscription_projector import SubscriptionProjector


def create_app(config_object=Config, settings=None, billing_client=None):
    """
    Build the app. Secrets are read from the environment once, here, unless settings are passed in.
    """
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s [%(name)s] %(message)s")

    app = Flask(__name__)
    app.config.from_object(config_object)
    db.init_app(app)

    settings = settings or WebhookSettings.from_env()
    billing_client = billing_client or StripeBillingClient(settings)
    audit_log = AuditLog()
    notifier = Notifier(UserDirectory())

    app.extensions["stripe_webhook_handler"] = StripeWebhookHandler(
        settings=settings,
        billing_client=billing_client,
        projector=SubscriptionProjector(billing_client, notifier, audit_log),
        payment_handler=PaymentEventHandler(billing_client, notifier, audit_log),
        audit_log=audit_log,
    )
    app.register_blueprint(api_bp)

    with app.app_context():
        db.create_all()

    return app


if __name__ == "__main__":
    create_app().run(debug=True)
