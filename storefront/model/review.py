#  --- storefront/model/review.py ---
from ..extensions import db
from ..utils.parse import utcnow, isoformat


class Review(db.Model):
    __tablename__ = "reviews"
    __table_args__ = (
        db.UniqueConstraint("user_id", "product_id", name="uq_reviews_user_product"),
        db.CheckConstraint("rating >= 1 AND rating <= 5", name="ck_reviews_rating_range"),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    rating = db.Column(db.Integer, nullable=False)
    comment = db.Column(db.Text)
    is_verified_purchase = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, default=utcnow, index=True)

    user = db.relationship("User", lazy="joined")

    def as_api(self):
        return {
            "id": self.id,
            "product_id": self.product_id,
            "rating": self.rating,
            "comment": self.comment,
            "is_verified_purchase": self.is_verified_purchase,
            "user": {"id": self.user.id, "name": self.user.name} if self.user else None,
            "created_at": isoformat(self.created_at),
        }


class WishlistEntry(db.Model):
    __tablename__ = "liked_products"
    __table_args__ = (
        db.UniqueConstraint("user_id", "product_id", name="uq_liked_products_user_product"),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    created_at = db.Column(db.DateTime, default=utcnow)

    product = db.relationship("Product", lazy="joined")
