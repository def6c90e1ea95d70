from flask import request

from . import bp
from ..extensions import db
from ..model import Tag, product_tags
from ..services.catalog_service import commit_or_raise
from ..utils.api import ok
from ..utils.decorators import admin_required
from ..utils.errors import BadRequest, Conflict, NotFound
from ..utils.parse import slugify


@bp.get("")
def list_tags():
    tags = Tag.query.order_by(Tag.name.asc()).all()
    return ok("Tags fetched", [t.as_dict() for t in tags])


@bp.post("")
@admin_required
def create_tag():
    data = request.get_json(silent=True) or {}
    name = (data.get("name") or "").strip()
    slug = slugify(name)
    if not slug:
        raise BadRequest("Tag name is required")
    if Tag.query.filter((Tag.slug == slug) | Tag.name.ilike(name)).first():
        raise Conflict("Tag already exists")
    tag = Tag(name=name, slug=slug)
    db.session.add(tag)
    commit_or_raise("create tag")
    return ok("Tag created successfully", tag.as_dict(), status=201)


@bp.delete("/<int:tag_id>")
@admin_required
def delete_tag(tag_id):
    tag = db.session.get(Tag, tag_id)
    if not tag:
        raise NotFound("Tag not found")
    db.session.execute(product_tags.delete().where(product_tags.c.tag_id == tag_id))
    db.session.delete(tag)
    commit_or_raise("delete tag")
    return ok("Tag deleted successfully")
