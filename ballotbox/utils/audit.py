from typing import Optional, Dict, Any
from flask import current_app, request
from flask_jwt_extended import verify_jwt_in_request, get_jwt_identity, get_jwt
from flask_jwt_extended.exceptions import JWTExtendedException
from jwt.exceptions import PyJWTError

from ..extensions import db
from ..models.audit_log import AuditLog

def _optional_actor():
    """
    Returns (actor_id, role) or (None, None).
    Works for both authenticated and anonymous requests.
    """
    try:
        verify_jwt_in_request(optional=True)
        claims = get_jwt() or {}
        return get_jwt_identity(), claims.get("role")
    except (JWTExtendedException, PyJWTError):
        return None, None

def audit_log(
    action: str,
    entity_type: Optional[str] = None,
    entity_id: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
) -> None:
    """Stage an audit row in the current session; the caller commits."""
    actor_id, role = _optional_actor()

    ip = request.headers.get("X-Forwarded-For", request.remote_addr)
    ua = request.headers.get("User-Agent")

    log = AuditLog(
        actor_id=str(actor_id) if actor_id else None,
        actor_role=role,
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id) if entity_id else None,
        ip_address=ip,
        user_agent=ua[:255] if ua else None,
        details=details or None,
    )
    db.session.add(log)

def safe_audit(
    action: str,
    entity_type: Optional[str] = None,
    entity_id: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
) -> None:
    """
    Best-effort audit in its own commit, for paths that already committed
    (or must not fail because auditing did).
    """
    try:
        audit_log(action=action, entity_type=entity_type, entity_id=entity_id, details=details)
        db.session.commit()
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Audit logging failed: %s", action)
