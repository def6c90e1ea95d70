# ------- storefront/utils/decorators.py -------
from functools import wraps

from flask import current_app, g
from flask_jwt_extended import get_jwt, get_jwt_identity, verify_jwt_in_request

from ..extensions import db
from ..model import User, Role
from ..services.identity import IdentityError, get_identity_verifier
from .errors import Forbidden, Unauthorized
from .net import bearer_token
from .parse import utcnow


# ---- customers: identity-provider bearer tokens ----------------------------

def identity_required(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        token = bearer_token()
        if not token:
            raise Unauthorized("Missing Authorization token")
        try:
            g.identity = get_identity_verifier().verify(token)
        except IdentityError as e:
            current_app.logger.warning("identity token verification failed: %s", e)
            raise Unauthorized("Invalid or expired token")
        if not g.identity.get("uid"):
            raise Unauthorized("Invalid or expired token")
        return fn(*args, **kwargs)
    return wrapper


def find_customer(identity):
    return User.query.filter_by(firebase_uid=identity["uid"]).first()


def current_customer(create=True):
    """User row for the verified identity; created (or linked by email) on first use."""
    identity = g.identity
    user = find_customer(identity)
    if user or not create:
        return user

    email = (identity.get("email") or "").strip().lower()
    if email:
        user = User.query.filter_by(email=email).first()
    if user and not user.firebase_uid:
        user.firebase_uid = identity["uid"]
    elif not user:
        user = User(
            firebase_uid=identity["uid"],
            # phone-only identities still need a unique email
            email=email or f"{identity['uid']}@users.invalid",
            name=identity.get("name"),
            avatar_url=identity.get("picture"),
            phone_number=identity.get("phone_number"),
            role=Role.CUSTOMER,
            last_login_at=utcnow(),
        )
        db.session.add(user)
    db.session.commit()
    return user


# ---- admins: our own JWTs ---------------------------------------------------

def _current_user():
    verify_jwt_in_request()
    uid = get_jwt_identity()
    try:
        uid = int(uid)
    except (TypeError, ValueError):
        uid = None
    return db.session.get(User, uid) if uid else None


def role_required(*roles, message: str | None = None):
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            u = _current_user()
            if not u or not u.is_active:
                raise Unauthorized("Invalid token or user no longer exists")
            if get_jwt().get("role") not in roles or u.role not in roles:
                raise Forbidden(message or "Access denied")
            g.admin = u
            return fn(*args, **kwargs)
        return wrapper
    return decorator


admin_required = role_required(Role.ADMIN, message="Access denied. Admins only.")
