from flask import request, send_file

from . import bp
from ..services import catalog_service as catalog
from ..utils.api import ok
from ..utils.decorators import admin_required
from ..utils.errors import BadRequest


def _json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise BadRequest("Request body must be a JSON object")
    return data


# ---------- public ----------

@bp.get("")
def list_products():
    """
    category  -> category slug
    tag       -> tag slug or name
    featured  -> true/false
    min_price / max_price (minPrice / maxPrice also accepted)
    search    -> substring of name or description
    sort      -> price_asc, price_desc, name, newest, oldest
    order     -> asc/desc for the default created_at ordering
    page, limit
    """
    args = request.args
    filters = {
        "category": args.get("category"),
        "tag": args.get("tag"),
        "featured": args.get("featured"),
        "min_price": args.get("min_price", args.get("minPrice")),
        "max_price": args.get("max_price", args.get("maxPrice")),
        "search": args.get("search"),
        "sort": args.get("sort"),
        "order": args.get("order"),
        "page": args.get("page"),
        "limit": args.get("limit"),
    }
    return ok("Products fetched", catalog.list_products(filters))


@bp.get("/<int:product_id>/variants")
def product_variants(product_id):
    variants = catalog.get_product_variants(product_id)
    return ok("Variants fetched", [v.as_api() for v in variants])


# ---------- admin: bulk ----------

@bp.get("/export")
@admin_required
def export_products():
    output = catalog.export_catalog()
    return send_file(
        output,
        as_attachment=True,
        download_name="products_export.xlsx",
        mimetype="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    )


@bp.post("/import")
@admin_required
def import_products():
    if "file" not in request.files:
        raise BadRequest("No file part")
    file = request.files["file"]
    if not file.filename:
        raise BadRequest("No selected file")
    if not file.filename.lower().endswith(".xlsx"):
        raise BadRequest("Only .xlsx files are allowed")
    summary = catalog.import_catalog(file)
    return ok("Products imported successfully", summary)


@bp.get("/<slug>")
def get_product(slug):
    product = catalog.get_product_by_slug(slug)
    return ok("Product fetched", product.as_api())


# ---------- admin: products ----------

@bp.post("")
@admin_required
def create_product():
    product = catalog.create_product(_json_body())
    return ok("Product created successfully", product.as_api(), status=201)


@bp.patch("/<int:product_id>")
@admin_required
def update_product(product_id):
    product = catalog.update_product(product_id, _json_body())
    return ok("Product updated successfully", product.as_api())


@bp.delete("/<int:product_id>")
@admin_required
def delete_product(product_id):
    catalog.delete_product(product_id)
    return ok("Product deleted successfully")


# ---------- admin: variants ----------

@bp.post("/<int:product_id>/variants")
@admin_required
def add_variant(product_id):
    variant = catalog.add_variant(product_id, _json_body())
    return ok("Variant added successfully", variant.as_api(), status=201)


@bp.patch("/variants/<int:variant_id>")
@admin_required
def update_variant(variant_id):
    variant = catalog.update_variant(variant_id, _json_body())
    return ok("Variant updated successfully", variant.as_api())


@bp.delete("/variants/<int:variant_id>")
@admin_required
def delete_variant(variant_id):
    catalog.delete_variant(variant_id)
    return ok("Variant deleted successfully")
