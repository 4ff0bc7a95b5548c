from flask import jsonify, g
from sqlalchemy.exc import (
    DBAPIError,
    DisconnectionError,
    InterfaceError,
    OperationalError,
    SQLAlchemyError,
)
from werkzeug.exceptions import HTTPException


class BallotError(Exception):
    """Base for every error the voting core reports back to a caller."""

    code = "BALLOT_ERROR"
    message = "The request could not be completed."
    status = 400
    transient = False

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)
        if message:
            self.message = message


class TokenNotFound(BallotError):
    code = "TOKEN_NOT_FOUND"
    message = "Token not found."
    status = 404


class TokenAlreadyUsed(BallotError):
    code = "TOKEN_ALREADY_USED"
    message = "This token has already been used."
    status = 409


class CandidateNotFound(BallotError):
    code = "CANDIDATE_NOT_FOUND"
    message = "Candidate not found."
    status = 404


class PermissionDenied(BallotError):
    code = "PERMISSION_DENIED"
    message = "Access denied by the storage layer. Check the database grants and access rules."
    status = 403


class ConnectivityFailure(BallotError):
    code = "CONNECTIVITY_FAILURE"
    message = "Could not reach the database. Check the connection and try again."
    status = 503
    transient = True


class LockContention(ConnectivityFailure):
    """Reported under the same code; the database is reachable but busy."""

    message = "The database is busy with other requests. Try again in a moment."


class AuthUnavailable(BallotError):
    code = "AUTH_UNAVAILABLE"
    message = "Could not start a voting session. Refresh and try again."
    status = 503


class TokenBatchError(BallotError):
    code = "TOKEN_BATCH_FAILED"
    message = "Token batch was rejected. Retry the whole batch."
    status = 409


_PERMISSION_MARKERS = ("permission denied", "readonly database", "insufficient privilege")

# Serialization failure, deadlock, lock not available
_CONTENTION_PGCODES = ("40001", "40P01", "55P03")
_CONTENTION_MARKERS = ("database is locked", "database table is locked", "deadlock detected", "could not serialize")


def classify_db_error(exc: SQLAlchemyError) -> BallotError | None:
    """
    Map a SQLAlchemy error onto the error taxonomy.
    Returns None for errors that are bugs rather than storage conditions.
    """
    orig = getattr(exc, "orig", None)
    text = str(orig if orig is not None else exc).lower()

    if getattr(orig, "pgcode", None) == "42501" or any(m in text for m in _PERMISSION_MARKERS):
        return PermissionDenied()

    contended = getattr(orig, "pgcode", None) in _CONTENTION_PGCODES or any(m in text for m in _CONTENTION_MARKERS)
    if isinstance(exc, DBAPIError) and contended:
        return LockContention()

    if isinstance(exc, (OperationalError, InterfaceError, DisconnectionError)):
        return ConnectivityFailure()
    if isinstance(exc, DBAPIError) and exc.connection_invalidated:
        return ConnectivityFailure()
    return None


def _payload(code: str, message: str, details=None, status=400):
    return (
        jsonify({
            "success": False,
            "reason": code,
            "message": message,
            "details": details or None,
            "request_id": getattr(g, "request_id", None),
        }),
        status,
    )


def error_response(err: BallotError):
    return _payload(err.code, err.message, status=err.status)


def register_error_handlers(app):
    @app.errorhandler(BallotError)
    def handle_ballot_error(e: BallotError):
        return error_response(e)

    # Generic HTTP errors (404, 403, 401, etc.)
    @app.errorhandler(HTTPException)
    def handle_http_exception(e: HTTPException):
        desc = e.description

        # If we pass structured error info via abort(description=dict)
        if isinstance(desc, dict):
            code = desc.get("code") or e.name.replace(" ", "_").upper()
            message = desc.get("message") or e.name
            details = desc.get("errors") or desc.get("details")
            return _payload(code=code, message=message, details=details, status=e.code or 400)

        return _payload(
            code=e.name.replace(" ", "_").upper(),
            message=desc or e.name,
            details=None,
            status=e.code or 400
        )

    @app.errorhandler(404)
    def handle_404(_):
        return _payload("NOT_FOUND", "Resource not found", status=404)

    @app.errorhandler(500)
    def handle_500(_):
        # Don't leak internals
        return _payload("INTERNAL_SERVER_ERROR", "An unexpected error occurred", status=500)


def register_jwt_handlers(jwt):
    @jwt.unauthorized_loader
    def _missing_token(reason):
        return _payload("PERMISSION_DENIED", "Missing session token", details={"jwt": reason}, status=401)

    @jwt.invalid_token_loader
    def _invalid_token(reason):
        return _payload("PERMISSION_DENIED", "Invalid session token", details={"jwt": reason}, status=401)

    @jwt.expired_token_loader
    def _expired_token(jwt_header, jwt_payload):
        return _payload("PERMISSION_DENIED", "Session token has expired", status=401)

    @jwt.revoked_token_loader
    def _revoked_token(jwt_header, jwt_payload):
        return _payload("PERMISSION_DENIED", "Session token has been revoked", status=401)
