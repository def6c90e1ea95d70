# storefront/wishlist/routes.py
from . import bp
from ..extensions import db
from ..model import Product, WishlistEntry
from ..services.catalog_service import commit_or_raise
from ..utils.api import ok
from ..utils.decorators import current_customer, identity_required
from ..utils.errors import NotFound
from ..utils.parse import isoformat


@bp.get("")
@identity_required
def get_wishlist():
    user = current_customer()
    entries = (WishlistEntry.query
               .filter_by(user_id=user.id)
               .order_by(WishlistEntry.created_at.desc(), WishlistEntry.id.desc())
               .all())
    return ok("Wishlist fetched", [
        {"id": e.id, "created_at": isoformat(e.created_at), "product": e.product.as_list_item()}
        for e in entries
    ])


@bp.post("/<int:product_id>")
@identity_required
def add_to_wishlist(product_id):
    if not db.session.get(Product, product_id):
        raise NotFound("Product not found")
    user = current_customer()
    if WishlistEntry.query.filter_by(user_id=user.id, product_id=product_id).first():
        # re-adding is a no-op, not a conflict
        return ok("Already in wishlist")
    db.session.add(WishlistEntry(user_id=user.id, product_id=product_id))
    commit_or_raise("add to wishlist")
    return ok("Added to wishlist", status=201)


@bp.delete("/<int:product_id>")
@identity_required
def remove_from_wishlist(product_id):
    user = current_customer()
    WishlistEntry.query.filter_by(user_id=user.id, product_id=product_id).delete(synchronize_session=False)
    commit_or_raise("remove from wishlist")
    return ok("Removed from wishlist")
