import uuid
from datetime import datetime

from flask import Blueprint, request, current_app
from flasgger import swag_from
from flask_jwt_extended import (
    create_access_token,
    create_refresh_token,
    get_jwt_identity,
    jwt_required,
    get_jwt,
)
from sqlalchemy.exc import SQLAlchemyError

from ...errors import AuthUnavailable, error_response
from ...extensions import db
from ...models.admin_user import AdminUser
from ...models.token_blocklist import TokenBlocklist
from ...schemas.auth import LoginSchema, AdminSchema
from ...utils.audit import audit_log, safe_audit
from ...utils.rbac import ADMIN, VOTER, admin_required
from ...utils.security import verify_password
from ...utils.validation import validate_or_abort

auth_bp = Blueprint("auth", __name__)

login_schema = LoginSchema()
admin_schema = AdminSchema()


def _find_admin(admin_id):
    try:
        return db.session.get(AdminUser, uuid.UUID(str(admin_id)))
    except ValueError:
        return None


@auth_bp.post("/session")
@swag_from({
    "tags": ["Auth"],
    "summary": "Start an anonymous voting session",
    "description": (
        "Issues a short-lived access token with no credentials. It only gates "
        "POST /api/votes and carries no information about the voter."
    ),
    "responses": {
        200: {"description": "Session token issued"},
        503: {"description": "AUTH_UNAVAILABLE"},
    },
})
def anonymous_session():
    identity = f"anon-{uuid.uuid4().hex}"
    try:
        access_token = create_access_token(
            identity=identity,
            additional_claims={"role": VOTER},
            expires_delta=current_app.config["VOTER_SESSION_EXPIRES"],
        )
    except Exception:
        current_app.logger.exception("Could not issue anonymous session")
        return error_response(AuthUnavailable())

    return {"access_token": access_token, "token_type": "bearer", "role": VOTER}, 200


@auth_bp.post("/login")
@swag_from({
    "tags": ["Auth"],
    "summary": "Admin login with username and password",
    "parameters": [{
        "in": "body",
        "name": "body",
        "required": True,
        "schema": {
            "type": "object",
            "properties": {
                "username": {"type": "string", "example": "admin"},
                "password": {"type": "string", "example": "StrongPass123"},
            },
            "required": ["username", "password"],
        },
    }],
    "responses": {
        200: {"description": "Login successful, tokens returned"},
        400: {"description": "Validation error"},
        401: {"description": "Invalid credentials"},
        403: {"description": "Account not active"},
    }
})
def login():
    payload = request.get_json(silent=True) or {}
    data = validate_or_abort(login_schema, payload)

    username = data["username"].strip().lower()
    password = data["password"]

    try:
        admin = AdminUser.query.filter_by(username=username).first()

        # Invalid credentials (don't leak which part failed)
        if not verify_password(password, admin.password_hash if admin else None):
            audit_log(
                action="LOGIN_FAILED_INVALID_CREDENTIALS",
                entity_type="AUTH",
                details={"username": username},
            )
            db.session.commit()
            return {"message": "Invalid username or password"}, 401

        if not admin.is_active:
            audit_log(
                action="LOGIN_FAILED_INACTIVE_ACCOUNT",
                entity_type="AUTH",
                entity_id=str(admin.id),
                details={"username": admin.username},
            )
            db.session.commit()
            return {"message": "Account is not active"}, 403

        claims = {"role": ADMIN}
        access_token = create_access_token(identity=str(admin.id), additional_claims=claims)
        refresh_token = create_refresh_token(identity=str(admin.id), additional_claims=claims)

        admin.last_login_at = datetime.utcnow()
        audit_log(
            action="LOGIN_SUCCESS",
            entity_type="AUTH",
            entity_id=str(admin.id),
            details={"username": admin.username},
        )
        db.session.commit()

        return {
            "message": "Login successful",
            "access_token": access_token,
            "refresh_token": refresh_token,
            "token_type": "bearer",
            "admin": admin_schema.dump(admin),
        }, 200

    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("DB error during login")
        return {"message": "Authentication service error. Please try again."}, 500


@auth_bp.post("/refresh")
@jwt_required(refresh=True)
@swag_from({
    "tags": ["Auth"],
    "security": [{"BearerAuth": []}],
    "summary": "Refresh admin access token (requires refresh token)",
    "responses": {200: {"description": "New access token issued"}, 401: {"description": "Unauthorized"}},
})
def refresh():
    admin = _find_admin(get_jwt_identity())
    if not admin or not admin.is_active:
        return {"message": "Admin inactive or not found"}, 401

    access = create_access_token(identity=str(admin.id), additional_claims={"role": ADMIN})
    return {"access_token": access}, 200


@auth_bp.get("/me")
@admin_required
@swag_from({
    "tags": ["Auth"],
    "security": [{"BearerAuth": []}],
    "summary": "Current admin profile",
    "responses": {200: {"description": "Admin profile"}, 404: {"description": "Admin not found"}},
})
def me():
    admin = _find_admin(get_jwt_identity())
    if not admin:
        return {"message": "Admin not found"}, 404
    return {"admin": admin_schema.dump(admin)}, 200


def _revoke_current(token_type: str, action: str):
    jti = get_jwt().get("jti")
    if not jti:
        return {"message": "Invalid token"}, 400

    try:
        TokenBlocklist.revoke(jti, token_type)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("DB error during %s", action.lower())
        return {"message": "Logout failed"}, 500

    safe_audit(action=action, entity_type="AUTH", details={"jti": jti})
    return {"message": "Logged out successfully"}, 200


@auth_bp.post("/logout")
@jwt_required()
@swag_from({
    "tags": ["Auth"],
    "security": [{"BearerAuth": []}],
    "summary": "Logout (revoke access token)",
    "responses": {200: {"description": "Logged out"}, 401: {"description": "Unauthorized"}},
})
def logout():
    return _revoke_current("access", "LOGOUT_ACCESS")


@auth_bp.post("/logout/refresh")
@jwt_required(refresh=True)
@swag_from({
    "tags": ["Auth"],
    "security": [{"BearerAuth": []}],
    "summary": "Revoke refresh token",
    "responses": {200: {"description": "Refresh token revoked"}, 401: {"description": "Unauthorized"}},
})
def logout_refresh():
    return _revoke_current("refresh", "LOGOUT_REFRESH")
