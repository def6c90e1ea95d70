from flask import current_app

from ..extensions import db
from ..model import CartItem, Variant
from ..utils.errors import BadRequest, Forbidden, NotFound
from ..utils.money import D, as_float, round_money
from .catalog_service import commit_or_raise


def _user_items(user):
    return (CartItem.query
            .filter_by(user_id=user.id)
            .order_by(CartItem.created_at.desc(), CartItem.id.desc())
            .all())


def summarize(items):
    """Totals are derived on every read; nothing is cached on the rows."""
    subtotal = D(0)
    total_quantity = 0
    for it in items:
        subtotal += it.line_total_dec()
        total_quantity += it.quantity
    subtotal = round_money(subtotal)
    return {
        "items_count": len(items),
        "total_quantity": total_quantity,
        "subtotal": as_float(subtotal),
        "total": as_float(subtotal),
    }


def get_cart(user) -> dict:
    items = _user_items(user)
    return {"items": [it.as_api() for it in items], "summary": summarize(items)}


def _sellable_variant(variant_id) -> Variant:
    variant = db.session.get(Variant, variant_id) if variant_id is not None else None
    if not variant:
        raise NotFound("Product variant not found")
    if not variant.is_available:
        raise BadRequest("Product is not available")
    return variant


def _quantity(raw, default=None):
    if raw is None and default is not None:
        return default
    if isinstance(raw, bool):
        raise BadRequest("Quantity must be at least 1")
    try:
        qty = int(raw)
    except (TypeError, ValueError):
        raise BadRequest("Quantity must be at least 1")
    if qty < 1:
        raise BadRequest("Quantity must be at least 1")
    return qty


def add_to_cart(user, variant_id, quantity=None) -> CartItem:
    qty = _quantity(quantity, default=1)
    variant = _sellable_variant(variant_id)
    if qty > variant.stock_quantity:
        raise BadRequest(f"Only {variant.stock_quantity} items available in stock")

    item = CartItem.query.filter_by(user_id=user.id, variant_id=variant.id).first()
    if item:
        # same variant again: one row, quantities add up
        new_qty = item.quantity + qty
        if new_qty > variant.stock_quantity:
            raise BadRequest(
                f"Cannot add more. Only {variant.stock_quantity} items available "
                f"(you have {item.quantity} in cart)"
            )
        item.quantity = new_qty
    else:
        item = CartItem(user_id=user.id, variant_id=variant.id, quantity=qty)
        db.session.add(item)

    commit_or_raise("add item to cart")
    current_app.logger.info("cart add user=%s variant=%s qty=%s", user.id, variant.id, item.quantity)
    return item


def _owned_item(user, item_id) -> CartItem:
    item = db.session.get(CartItem, item_id)
    if not item:
        raise NotFound("Cart item not found")
    if item.user_id != user.id:
        raise Forbidden("Not authorized to modify this cart item")
    return item


def update_cart_item(user, item_id, quantity) -> CartItem:
    qty = _quantity(quantity)
    item = _owned_item(user, item_id)
    variant = item.variant
    if not variant.is_available:
        raise BadRequest("Product is not available")
    if qty > variant.stock_quantity:
        raise BadRequest(f"Only {variant.stock_quantity} items available in stock")
    item.quantity = qty
    commit_or_raise("update cart item")
    return item


def remove_from_cart(user, item_id):
    item = _owned_item(user, item_id)
    db.session.delete(item)
    commit_or_raise("remove cart item")


def clear_cart(user) -> int:
    removed = CartItem.query.filter_by(user_id=user.id).delete(synchronize_session=False)
    commit_or_raise("clear cart")
    return removed
