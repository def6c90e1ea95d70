# storefront/user/routes.py
from flask import g, request

from . import bp
from ..extensions import db
from ..model import CartItem, Order, Review, Role, User, WishlistEntry
from ..services.catalog_service import commit_or_raise
from ..utils.api import ok
from ..utils.decorators import admin_required, find_customer, identity_required
from ..utils.errors import BadRequest, Conflict, NotFound
from ..utils.parse import parse_bool


def _get_or_404(user_id):
    u = db.session.get(User, user_id)
    if not u:
        raise NotFound("User not found")
    return u


def _role(value):
    role = (value or Role.CUSTOMER).strip().lower()
    if role not in Role.ALL:
        raise BadRequest(f"role must be one of: {', '.join(Role.ALL)}")
    return role


def _password(value):
    if not value or len(value) < 6:
        raise BadRequest("Password must be at least 6 characters")
    return value


@bp.get("/verify")
@identity_required
def verify_user():
    u = find_customer(g.identity)
    if not u:
        raise NotFound("User not found")
    return ok("User exists", {"id": u.id, "firebase_uid": u.firebase_uid, "email": u.email})


@bp.get("")
@admin_required
def list_users():
    q = User.query
    role = (request.args.get("role") or "").strip()
    if role:
        q = q.filter(User.role == role)
    users = q.order_by(User.created_at.desc(), User.id.desc()).all()
    return ok("Users fetched", [u.as_dict() for u in users])


@bp.get("/<int:user_id>")
@admin_required
def get_user(user_id):
    return ok("User fetched", _get_or_404(user_id).as_dict())


@bp.post("")
@admin_required
def create_user():
    data = request.get_json(silent=True) or {}
    email = (data.get("email") or "").strip().lower()
    if not email:
        raise BadRequest("Email is required")
    if User.query.filter_by(email=email).first():
        raise Conflict("Email already registered")

    u = User(
        email=email,
        name=(data.get("name") or "").strip() or None,
        phone_number=data.get("phone_number"),
        role=_role(data.get("role")),
        is_active=parse_bool(data.get("is_active"), True),
    )
    if data.get("password"):
        u.set_password(_password(data.get("password")))
    db.session.add(u)
    commit_or_raise("create user")
    return ok("User created successfully", u.as_dict(), status=201)


@bp.patch("/<int:user_id>")
@admin_required
def update_user(user_id):
    u = _get_or_404(user_id)
    data = request.get_json(silent=True) or {}
    if "name" in data:
        u.name = (data.get("name") or "").strip() or None
    if "phone_number" in data:
        u.phone_number = data.get("phone_number")
    if "role" in data:
        u.role = _role(data.get("role"))
    if "is_active" in data:
        u.is_active = parse_bool(data.get("is_active"))
    if "password" in data:
        u.set_password(_password(data.get("password")))
    commit_or_raise("update user")
    return ok("User updated successfully", u.as_dict())


@bp.delete("/<int:user_id>")
@admin_required
def delete_user(user_id):
    if user_id == g.admin.id:
        raise BadRequest("You cannot delete your own account")
    u = _get_or_404(user_id)
    # orders keep their owner; such accounts can only be deactivated
    if Order.query.filter_by(user_id=u.id).first():
        raise Conflict("User has orders and cannot be deleted; deactivate the account instead")
    for model in (CartItem, WishlistEntry, Review):
        model.query.filter_by(user_id=u.id).delete(synchronize_session=False)
    db.session.delete(u)
    commit_or_raise("delete user")
    return ok("User deleted successfully")
