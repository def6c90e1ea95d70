from ..extensions import db
from ..utils.money import as_float
from ..utils.parse import utcnow, isoformat
from .types import OrderStatus, PaymentStatus, PaymentMethod


class Order(db.Model):
    __tablename__ = "orders"

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(32), unique=True, index=True)  # e.g., "ORD-20251022-1A2B3C4D"
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    status = db.Column(db.String(20), nullable=False, default=OrderStatus.PENDING, index=True)
    payment_status = db.Column(db.String(20), nullable=False, default=PaymentStatus.PENDING, index=True)
    payment_method = db.Column(db.String(16), nullable=False, default=PaymentMethod.COD)

    shipping_address = db.Column(db.JSON, nullable=False)

    # Money snapshot
    total_amount = db.Column(db.Numeric(12, 2), nullable=False)
    discount_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    final_amount = db.Column(db.Numeric(12, 2), nullable=False)

    # Payment gateway correlation
    gateway_order_id = db.Column(db.String(64), unique=True, index=True)
    transaction_id = db.Column(db.String(64), index=True)

    created_at = db.Column(db.DateTime, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    user = db.relationship("User", lazy="joined")
    items = db.relationship(
        "OrderItem",
        backref="order",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="OrderItem.id.asc()",
    )

    def as_api(self, with_user=False):
        data = {
            "id": self.id,
            "code": self.code,
            "user_id": self.user_id,
            "status": self.status,
            "payment_status": self.payment_status,
            "payment_method": self.payment_method,
            "shipping_address": self.shipping_address,
            "total_amount": as_float(self.total_amount),
            "discount_amount": as_float(self.discount_amount),
            "final_amount": as_float(self.final_amount),
            "gateway_order_id": self.gateway_order_id,
            "transaction_id": self.transaction_id,
            "items": [i.as_api() for i in self.items],
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }
        if with_user:
            data["user"] = self.user.as_brief() if self.user else None
        return data


class OrderItem(db.Model):
    """Frozen copy of what was bought; never recomputed from the catalog."""

    __tablename__ = "order_items"

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)

    # not FK constraints: the catalog may change, the snapshot must not
    variant_id = db.Column(db.Integer, index=True)
    product_id = db.Column(db.Integer, index=True)
    product_name = db.Column(db.String(255), nullable=False)
    variant_details = db.Column(db.JSON)

    price = db.Column(db.Numeric(12, 2), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    line_total = db.Column(db.Numeric(12, 2), nullable=False)

    def as_api(self):
        return {
            "id": self.id,
            "variant_id": self.variant_id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "variant_details": self.variant_details,
            "price": as_float(self.price),
            "quantity": self.quantity,
            "line_total": as_float(self.line_total),
        }
