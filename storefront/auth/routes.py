from flask import g, request
from flask_jwt_extended import create_access_token

from . import bp
from ..extensions import db
from ..model import Role, User
from ..utils.api import ok
from ..utils.decorators import current_customer, find_customer, identity_required
from ..utils.errors import BadRequest, NotFound, Unauthorized
from ..utils.parse import utcnow


@bp.post("/login")
def login():
    """Admin email/password login; returns a signed access token."""
    data = request.get_json(silent=True) or {}
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""
    if not email or not password:
        raise BadRequest("Email and password are required")

    user = User.query.filter_by(email=email).first()
    if not user or user.role != Role.ADMIN or not user.is_active or not user.check_password(password):
        raise Unauthorized("Invalid credentials")

    token = create_access_token(identity=str(user.id), additional_claims={"role": user.role})
    user.last_login_at = utcnow()
    db.session.commit()
    return ok("Login successful", {"token": token, "user": user.as_dict()})


@bp.post("/sync")
@identity_required
def sync_user():
    identity = g.identity
    if not identity.get("email"):
        raise BadRequest("Missing uid or email in identity token")
    data = request.get_json(silent=True) or {}

    user = current_customer()
    user.email = identity["email"].strip().lower()
    user.name = data.get("displayName") or identity.get("name") or user.name
    user.avatar_url = data.get("photoURL") or identity.get("picture") or user.avatar_url
    user.phone_number = identity.get("phone_number") or user.phone_number
    user.last_login_at = utcnow()
    db.session.commit()
    return ok("User synced successfully", user.as_dict())


@bp.get("/me")
@identity_required
def me():
    user = find_customer(g.identity)
    if not user:
        raise NotFound("User not found")
    return ok("Current user", user.as_dict())
