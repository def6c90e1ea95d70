# storefront/cart/routes.py
from flask import request

from . import bp
from ..services import cart_service
from ..utils.api import ok
from ..utils.decorators import current_customer, identity_required


@bp.get("")
@identity_required
def get_cart():
    return ok("Cart fetched", cart_service.get_cart(current_customer()))


@bp.post("")
@identity_required
def add_item():
    data = request.get_json(silent=True) or {}
    user = current_customer()
    item = cart_service.add_to_cart(user, data.get("variant_id"), data.get("quantity"))
    return ok("Item added to cart", item.as_api(), status=201)


@bp.patch("/<int:item_id>")
@identity_required
def update_item(item_id):
    data = request.get_json(silent=True) or {}
    item = cart_service.update_cart_item(current_customer(), item_id, data.get("quantity"))
    return ok("Cart item updated", item.as_api())


@bp.delete("/<int:item_id>")
@identity_required
def remove_item(item_id):
    cart_service.remove_from_cart(current_customer(), item_id)
    return ok("Item removed from cart")


@bp.delete("")
@identity_required
def clear():
    removed = cart_service.clear_cart(current_customer())
    return ok("Cart cleared", {"removed": removed})
