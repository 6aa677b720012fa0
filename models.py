"""
Database models for the app
"""
from datetime import datetime, timezone

from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import event

db = SQLAlchemy()


def utcnow():
    return datetime.now(timezone.utc)


class Subscriber(db.Model):
    """Local projection of a billing customer's subscription, one row per email."""
    __tablename__ = 'subscribers'

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False)
    stripe_customer_id = db.Column(db.String(100), nullable=True)
    subscribed = db.Column(db.Boolean, nullable=False, default=False)
    subscription_tier = db.Column(db.String(16), nullable=True)
    subscription_end = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)


class SystemLog(db.Model):
    __tablename__ = 'system_logs'

    id = db.Column(db.Integer, primary_key=True)
    level = db.Column(db.String(8), nullable=False)
    message = db.Column(db.String(255), nullable=False)
    context = db.Column(db.JSON, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)


@event.listens_for(SystemLog, 'before_update')
def _reject_system_log_update(mapper, connection, target):
    # audit entries are append-only
    raise ValueError("system_logs entries cannot be modified")


class Notification(db.Model):
    __tablename__ = 'notifications'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(64), nullable=False, index=True)
    title = db.Column(db.String(255), nullable=False)
    message = db.Column(db.Text, nullable=False)
    type = db.Column(db.String(16), nullable=False, default='info')
    read = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)


class PlatformUser(db.Model):
    """Accounts of the platform's auth provider, only read here to map emails to user ids."""
    __tablename__ = 'users'

    id = db.Column(db.String(64), primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False)
