"""
Subscription status handler for the app.
"""

from models import db, PlatformUser, Subscriber
from helpers import ResponseHelper, DateTimeNaiveHelper


class SubscriptionStatusHandler:
    @staticmethod
    def get_subscription_status(user_id):
        """
        Get the projected subscription status for a platform user
        """

        user = db.session.get(PlatformUser, user_id)
        if not user:
            return ResponseHelper.error("User not found", 404)

        subscriber = Subscriber.query.filter_by(email=user.email).first()
        if not subscriber or not subscriber.subscribed:
            return ResponseHelper.success({
                "subscribed": False,
                "subscription_tier": None,
                "subscription_end": None,
            })

        return ResponseHelper.success({
            "subscribed": True,
            "subscription_tier": subscriber.subscription_tier,
            "subscription_end": DateTimeNaiveHelper.to_iso_string(subscriber.subscription_end),
        })
