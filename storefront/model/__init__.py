# ------ storefront/model/__init__.py ------

from .user import User
from .category import Category, Tag
from .product import Product, ProductImage, Variant, product_categories, product_tags
from .cart import CartItem
from .order import Order, OrderItem
from .coupon import Coupon
from .review import Review, WishlistEntry
from .banner import Banner
from .types import Role, OrderStatus, PaymentStatus, PaymentMethod, CouponType

__all__ = [
    "User",
    "Category",
    "Tag",
    "Product",
    "ProductImage",
    "Variant",
    "product_categories",
    "product_tags",
    "CartItem",
    "Order",
    "OrderItem",
    "Coupon",
    "Review",
    "WishlistEntry",
    "Banner",
    "Role",
    "OrderStatus",
    "PaymentStatus",
    "PaymentMethod",
    "CouponType",
]
