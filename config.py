"""
Configuration settings for the app
"""
import os
from dataclasses import dataclass
from typing import Optional


class ConfigurationError(Exception):
    """Raised when the service is missing secrets it needs to process webhooks."""


class Config:
    SQLALCHEMY_DATABASE_URI = os.getenv('DATABASE_URL', 'sqlite:///psicoplan.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False


@dataclass(frozen=True)
class WebhookSettings:
    """
    Secrets for the billing webhook. Built once when the app is created and handed to the handlers.
    """
    stripe_secret_key: Optional[str] = None
    webhook_secret: Optional[str] = None
    stripe_api_version: str = '2023-10-16'
    signature_tolerance: int = 300

    @classmethod
    def from_env(cls, environ=None):
        environ = os.environ if environ is None else environ
        return cls(
            stripe_secret_key=environ.get('STRIPE_SECRET_KEY') or None,
            webhook_secret=environ.get('STRIPE_WEBHOOK_SECRET') or None,
            stripe_api_version=environ.get('STRIPE_API_VERSION', '2023-10-16'),
            signature_tolerance=int(environ.get('STRIPE_SIGNATURE_TOLERANCE', '300')),
        )

    def require(self):
        if not self.stripe_secret_key or not self.webhook_secret:
            raise ConfigurationError("Missing required environment variables")
        return self
