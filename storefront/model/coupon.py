# --- storefront/model/coupon.py ---

from ..extensions import db
from ..utils.money import as_float
from ..utils.parse import utcnow, isoformat
from .types import CouponType


class Coupon(db.Model):
    __tablename__ = "coupons"

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(64), unique=True, nullable=False, index=True)

    # "percentage" or "fixed"
    type = db.Column(db.String(16), nullable=False, default=CouponType.PERCENTAGE)
    value = db.Column(db.Numeric(12, 2), nullable=False)

    # Optional constraints
    min_cart_value = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    max_discount = db.Column(db.Numeric(12, 2), nullable=True)
    start_date = db.Column(db.DateTime, nullable=False, default=utcnow)
    end_date = db.Column(db.DateTime, nullable=True)
    usage_limit = db.Column(db.Integer, nullable=True)
    times_used = db.Column(db.Integer, nullable=False, default=0)

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    def as_api(self):
        return {
            "id": self.id,
            "code": self.code,
            "type": self.type,
            "value": as_float(self.value),
            "min_cart_value": as_float(self.min_cart_value),
            "max_discount": as_float(self.max_discount),
            "start_date": isoformat(self.start_date),
            "end_date": isoformat(self.end_date),
            "usage_limit": self.usage_limit,
            "times_used": self.times_used,
            "is_active": self.is_active,
            "created_at": isoformat(self.created_at),
        }
