"""
API routes for the app
"""
from flask import Blueprint, current_app, request

from helpers import ResponseHelper
from subscription_status_handler import SubscriptionStatusHandler

api_bp = Blueprint('api', __name__)


@api_bp.route("/stripe-webhook", methods=["POST", "OPTIONS"])
def handle_stripe_webhook():
    """
    Stripe webhook endpoint
    The signature covers the exact bytes Stripe sent, so the body is read raw and never parsed before verification.
    """
    if request.method == "OPTIONS":
        return ResponseHelper.preflight()

    handler = current_app.extensions["stripe_webhook_handler"]
    return handler.process_webhook(request.get_data(), request.headers.get("stripe-signature"))


@api_bp.route("/user/<user_id>/subscription", methods=["GET"])
def get_subscription_status(user_id):
    """
    Get user subscription status
    """

    return SubscriptionStatusHandler.get_subscription_status(user_id)
