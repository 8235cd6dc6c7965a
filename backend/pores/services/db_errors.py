"""
Database availability classification.

WHY: When the datastore is unreachable the merchant client falls back to
its offline cache. It recognises that case by a 503 with the stable code
DATABASE_UNAVAILABLE, so connectivity failures must be told apart from
ordinary server errors.
"""

import re

from flask import current_app, jsonify
from sqlalchemy.exc import DisconnectionError, InterfaceError, OperationalError

from ..extensions import db

DATABASE_UNAVAILABLE = "DATABASE_UNAVAILABLE"

_CONNECTION_MESSAGE = re.compile(
    r"connection refused|connection reset|connection timed out|connection is closed|"
    r"server closed the connection|could not connect|econnrefused|econnreset|"
    r"password authentication failed|unable to open database file",
    re.IGNORECASE,
)


def is_database_connection_error(error: BaseException | None) -> bool:
    if error is None:
        return False
    if isinstance(error, (DisconnectionError, InterfaceError)):
        return True
    if isinstance(error, OperationalError):
        return True
    return bool(_CONNECTION_MESSAGE.search(str(error)))


def database_unavailable_response(message: str = "Database unavailable"):
    return jsonify({"error": message, "code": DATABASE_UNAVAILABLE}), 503


def unexpected_error_response(action: str, error: BaseException):
    """
    Log an unhandled route error and pick 503 or 500.

    The session is rolled back so the request's scoped session is clean
    for teardown.
    """
    db.session.rollback()
    current_app.logger.exception("%s failed", action)
    if is_database_connection_error(error):
        return database_unavailable_response()
    return jsonify({"error": f"{action} failed"}), 500
