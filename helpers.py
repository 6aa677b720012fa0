"""
Helper functions for the app.
"""

from flask import jsonify
from datetime import timezone

CORS_HEADERS = {
    'Access-Control-Allow-Origin': '*',
    'Access-Control-Allow-Headers': 'authorization, x-client-info, apikey, content-type',
}


class ResponseHelper:
    """
    Helper class for generating JSON responses.
    """

    @staticmethod
    def success(message, headers=None):
        """
        Generate a success response.
        """
        if isinstance(message, dict):
            return jsonify(message), 200, headers or {}

        return jsonify({"message": message}), 200, headers or {}

    @staticmethod
    def error(message, status_code=400, headers=None):
        """
        Generate an error response.
        """
        return jsonify({"error": message}), status_code, headers or {}

    @staticmethod
    def text(message, status_code, headers=None):
        """
        Generate a plain text response.
        """
        return message, status_code, {**(headers or {}), 'Content-Type': 'text/plain; charset=utf-8'}

    @staticmethod
    def preflight():
        """
        Answer a CORS preflight request, no body.
        """
        return '', 200, CORS_HEADERS


class DateTimeNaiveHelper:
    """
    Helper class for making naive datetimes UTC-aware and formatting them as ISO strings.
    """

    @staticmethod
    def make_timezone_aware(dt):
        """Convert naive datetime to UTC timezone-aware datetime, since SQLAlchemy gives out naive datetimes by
        default."""
        if dt is None:
            return None
        if dt.tzinfo is None:
            return dt.replace(tzinfo=timezone.utc)
        return dt

    @staticmethod
    def to_iso_string(dt):
        """UTC ISO-8601 with millisecond precision and a Z suffix, e.g. 2025-01-01T00:00:00.000Z"""
        if dt is None:
            return None
        dt = DateTimeNaiveHelper.make_timezone_aware(dt).astimezone(timezone.utc)
        return dt.strftime('%Y-%m-%dT%H:%M:%S.') + f"{dt.microsecond // 1000:03d}Z"
