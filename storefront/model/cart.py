# storefront/model/cart.py
from __future__ import annotations

from decimal import Decimal

from ..extensions import db
from ..utils.money import as_float, round_money
from ..utils.parse import utcnow, isoformat


class CartItem(db.Model):
    __tablename__ = "cart_items"
    __table_args__ = (
        db.UniqueConstraint("user_id", "variant_id", name="uq_cart_items_user_variant"),
        db.CheckConstraint("quantity >= 1", name="ck_cart_items_quantity_positive"),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    variant_id = db.Column(db.Integer, db.ForeignKey("product_variants.id"), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    variant = db.relationship("Variant", lazy="joined")

    # ---- price helpers ----
    def unit_price_dec(self) -> Decimal:
        return self.variant.unit_price()

    def line_total_dec(self) -> Decimal:
        return round_money(self.unit_price_dec() * Decimal(self.quantity))

    def as_api(self):
        variant = self.variant
        product = variant.product
        return {
            "cart_item_id": self.id,
            "variant_id": variant.id,
            "product_id": product.id,
            "product_name": product.name,
            "product_slug": product.slug,
            "product_image": product.primary_image(),
            "sku_code": variant.sku_code,
            "color": variant.color,
            "size": variant.size,
            "price": as_float(self.unit_price_dec()),
            "mrp": as_float(product.mrp),
            "quantity": self.quantity,
            "stock_available": variant.stock_quantity,
            "in_stock": variant.stock_quantity >= self.quantity,
            "item_total": as_float(self.line_total_dec()),
            "is_active": bool(product.is_active and variant.is_active),
            "created_at": isoformat(self.created_at),
        }
