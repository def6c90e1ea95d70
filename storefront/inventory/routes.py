# storefront/inventory/routes.py
from flask import current_app, request

from . import bp
from ..services.catalog_service import set_stock
from ..utils.api import ok
from ..utils.decorators import admin_required
from ..utils.errors import BadRequest
from ..utils.parse import parse_opt_int


@bp.post("/update")
@admin_required
def update_inventory():
    data = request.get_json(silent=True) or {}
    variant_id = parse_opt_int(data.get("variant_id", data.get("variantId")))
    stock = data.get("stock")
    if variant_id is None or stock is None:
        raise BadRequest("Variant ID and stock quantity are required")
    product_id = data.get("product_id", data.get("productId"))

    variant = set_stock(variant_id, stock, product_id=product_id)
    current_app.logger.info("inventory set variant=%s stock=%s", variant.id, variant.stock_quantity)
    return ok("Inventory updated successfully", variant.as_api())
