from flask import request
from flask_jwt_extended import get_jwt, verify_jwt_in_request
from flask_jwt_extended.exceptions import JWTExtendedException
from jwt.exceptions import PyJWTError

from . import bp
from ..extensions import db
from ..model import Banner, Role
from ..services.catalog_service import commit_or_raise
from ..utils.api import ok
from ..utils.decorators import admin_required
from ..utils.errors import BadRequest, NotFound
from ..utils.parse import parse_bool, parse_int


def _is_admin_request():
    try:
        verify_jwt_in_request(optional=True)
    except (JWTExtendedException, PyJWTError):
        return False
    return get_jwt().get("role") == Role.ADMIN


def _apply(banner, data):
    extra = dict(banner.extra or {})
    for key, value in data.items():
        if key in ("id", "created_at", "updated_at"):
            continue
        if key == "is_active":
            banner.is_active = parse_bool(value, True)
        elif key == "display_order":
            banner.display_order = parse_int(value, 0)
        elif key in Banner.FIELDS:
            setattr(banner, key, value)
        else:
            extra[key] = value
    banner.extra = extra or None


def _body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict) or not data:
        raise BadRequest("Request body cannot be empty")
    return data


def _get_or_404(banner_id):
    banner = db.session.get(Banner, banner_id)
    if not banner:
        raise NotFound("Banner not found")
    return banner


@bp.get("")
def list_banners():
    q = Banner.query
    if not (parse_bool(request.args.get("all")) and _is_admin_request()):
        q = q.filter(Banner.is_active.is_(True))
    banners = q.order_by(Banner.display_order.asc(), Banner.created_at.desc(), Banner.id.desc()).all()
    return ok("Banners fetched", [b.as_api() for b in banners])


@bp.post("")
@admin_required
def create_banner():
    banner = Banner()
    _apply(banner, _body())
    db.session.add(banner)
    commit_or_raise("create banner")
    return ok("Banner created successfully", banner.as_api(), status=201)


@bp.patch("/<int:banner_id>")
@admin_required
def update_banner(banner_id):
    data = _body()
    banner = _get_or_404(banner_id)
    _apply(banner, data)
    commit_or_raise("update banner")
    return ok("Banner updated successfully", banner.as_api())


@bp.delete("/<int:banner_id>")
@admin_required
def delete_banner(banner_id):
    banner = _get_or_404(banner_id)
    db.session.delete(banner)
    commit_or_raise("delete banner")
    return ok("Banner deleted successfully")
