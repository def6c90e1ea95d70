# storefront/review/routes.py
from flask import request
from sqlalchemy import func

from . import bp
from ..extensions import db
from ..model import Order, OrderItem, Product, Review
from ..services.catalog_service import commit_or_raise
from ..utils.api import ok
from ..utils.decorators import current_customer, identity_required
from ..utils.errors import BadRequest, Conflict, NotFound
from ..utils.parse import parse_opt_int


def _has_purchased(user_id, product_id):
    return db.session.query(
        OrderItem.query
        .join(Order, Order.id == OrderItem.order_id)
        .filter(Order.user_id == user_id, OrderItem.product_id == product_id)
        .exists()
    ).scalar()


@bp.post("")
@identity_required
def add_review():
    data = request.get_json(silent=True) or {}
    product_id = parse_opt_int(data.get("product_id"))
    rating = parse_opt_int(data.get("rating"))
    if product_id is None or data.get("rating") in (None, ""):
        raise BadRequest("Product ID and rating are required")
    if rating is None or not 1 <= rating <= 5:
        raise BadRequest("Rating must be between 1 and 5")
    if not Product.query.filter_by(id=product_id, is_active=True).first():
        raise NotFound("Product not found")

    user = current_customer()
    if Review.query.filter_by(user_id=user.id, product_id=product_id).first():
        raise Conflict("You have already reviewed this product")

    review = Review(
        user_id=user.id,
        product_id=product_id,
        rating=rating,
        comment=data.get("comment"),
        is_verified_purchase=bool(_has_purchased(user.id, product_id)),
    )
    db.session.add(review)
    commit_or_raise("add review")
    return ok("Review added", review.as_api(), status=201)


@bp.get("/product/<int:product_id>")
def product_reviews(product_id):
    reviews = (Review.query
               .filter_by(product_id=product_id)
               .order_by(Review.created_at.desc(), Review.id.desc())
               .all())
    avg = db.session.query(func.avg(Review.rating)).filter(Review.product_id == product_id).scalar()
    return ok("Reviews fetched", {
        "reviews": [r.as_api() for r in reviews],
        "average_rating": round(float(avg), 1) if avg is not None else 0,
        "count": len(reviews),
    })


@bp.delete("/<int:review_id>")
@identity_required
def delete_review(review_id):
    user = current_customer()
    review = Review.query.filter_by(id=review_id, user_id=user.id).first()
    if not review:
        raise NotFound("Review not found")
    db.session.delete(review)
    commit_or_raise("delete review")
    return ok("Review deleted")
