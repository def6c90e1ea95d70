# --- category/routes.py ---
from flask import request

from . import bp
from ..extensions import db
from ..model import Category, product_categories
from ..services.catalog_service import commit_or_raise
from ..utils.api import ok
from ..utils.decorators import admin_required
from ..utils.errors import BadRequest, Conflict, NotFound
from ..utils.parse import parse_bool, parse_opt_int, slugify


# ------------------------ helpers ------------------------
def _get_or_404(cid):
    c = db.session.get(Category, cid)
    if not c:
        raise NotFound("Category not found")
    return c


def _apply_parent(c, raw):
    if raw in (None, ""):
        c.parent_id = None
        return
    pid = parse_opt_int(raw)
    if pid is None:
        raise BadRequest("parent_id must be an integer")
    if c.id is not None and pid == c.id:
        raise BadRequest("A category cannot be its own parent")
    if not db.session.get(Category, pid):
        raise BadRequest("Parent category not found")
    c.parent_id = pid


# ------------------------ CATEGORY ROUTES ------------------------

@bp.get("")
def list_categories():
    """
    tree -> true nests active children under their active parents
    """
    rows = (Category.query
            .filter(Category.is_active.is_(True))
            .order_by(Category.name.asc())
            .all())
    if parse_bool(request.args.get("tree")):
        roots = [c for c in rows if c.parent_id is None]
        return ok("Categories fetched", [c.as_dict(with_children=True) for c in roots])
    return ok("Categories fetched", [c.as_dict() for c in rows])


@bp.get("/<slug>")
def get_category(slug):
    c = Category.query.filter_by(slug=slug, is_active=True).first()
    if not c:
        raise NotFound("Category not found")
    return ok("Category fetched", c.as_dict(with_children=True))


@bp.post("")
@admin_required
def create_category():
    data = request.get_json(silent=True) or {}
    name = (data.get("name") or "").strip()
    if not name or not slugify(name):
        raise BadRequest("Category name is required")
    if Category.query.filter(Category.name.ilike(name)).first():
        raise Conflict("Category name already exists")

    c = Category(
        name=name,
        slug=slugify(name),
        description=data.get("description"),
        image_url=data.get("image_url"),
        is_active=parse_bool(data.get("is_active"), True),
    )
    _apply_parent(c, data.get("parent_id"))
    db.session.add(c)
    commit_or_raise("create category")
    return ok("Category created successfully", c.as_dict(), status=201)


@bp.patch("/<int:cid>")
@admin_required
def update_category(cid):
    c = _get_or_404(cid)
    data = request.get_json(silent=True) or {}
    if "name" in data:
        new_name = (data.get("name") or "").strip()
        if not new_name or not slugify(new_name):
            raise BadRequest("name cannot be empty")
        exists = Category.query.filter(Category.name.ilike(new_name), Category.id != c.id).first()
        if exists:
            raise Conflict("Category name already exists")
        c.name = new_name
        c.slug = slugify(new_name)
    for key in ("description", "image_url"):
        if key in data:
            setattr(c, key, data.get(key))
    if "is_active" in data:
        c.is_active = parse_bool(data.get("is_active"))
    if "parent_id" in data:
        _apply_parent(c, data.get("parent_id"))
    commit_or_raise("update category")
    return ok("Category updated successfully", c.as_dict())


@bp.delete("/<int:cid>")
@admin_required
def delete_category(cid):
    c = _get_or_404(cid)
    if Category.query.filter_by(parent_id=cid).first():
        raise Conflict("Cannot delete: category has subcategories")
    db.session.execute(product_categories.delete().where(product_categories.c.category_id == cid))
    db.session.delete(c)
    commit_or_raise("delete category")
    return ok("Category deleted successfully")
