# storefront/model/types.py
"""String constants stored in status/type columns."""


class Role:
    CUSTOMER = "customer"
    ADMIN = "admin"
    ALL = (CUSTOMER, ADMIN)


class OrderStatus:
    PENDING = "pending"
    PLACED = "placed"          # payment verified
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    FAILED = "failed"
    ALL = (PENDING, PLACED, CONFIRMED, PROCESSING, SHIPPED, DELIVERED, CANCELLED, FAILED)


class PaymentStatus:
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"
    REFUNDED = "refunded"
    ALL = (PENDING, SUCCESS, FAILED, REFUNDED)


class PaymentMethod:
    COD = "cod"
    ONLINE = "online"
    ALL = (COD, ONLINE)


class CouponType:
    PERCENTAGE = "percentage"
    FIXED = "fixed"
    ALL = (PERCENTAGE, FIXED)
