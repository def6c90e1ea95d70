# storefront/model/product.py
from decimal import Decimal, ROUND_HALF_UP

from ..extensions import db
from ..utils.money import as_float
from ..utils.parse import utcnow, isoformat

product_categories = db.Table(
    "product_categories",
    db.Column("product_id", db.Integer, db.ForeignKey("products.id", ondelete="CASCADE"), primary_key=True),
    db.Column("category_id", db.Integer, db.ForeignKey("categories.id", ondelete="CASCADE"), primary_key=True),
)

product_tags = db.Table(
    "product_tags",
    db.Column("product_id", db.Integer, db.ForeignKey("products.id", ondelete="CASCADE"), primary_key=True),
    db.Column("tag_id", db.Integer, db.ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True),
)


class Product(db.Model):
    __tablename__ = "products"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False, index=True)
    slug = db.Column(db.String(255), nullable=False, unique=True, index=True)
    description = db.Column(db.Text)
    brand = db.Column(db.String(120))

    mrp = db.Column(db.Numeric(12, 2), nullable=False)
    selling_price = db.Column(db.Numeric(12, 2), nullable=False)

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)
    is_featured = db.Column(db.Boolean, nullable=False, default=False, index=True)

    created_at = db.Column(db.DateTime, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    images = db.relationship(
        "ProductImage",
        backref="product",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by=lambda: [ProductImage.display_order.asc(), ProductImage.id.asc()],
    )
    variants = db.relationship(
        "Variant",
        backref="product",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="Variant.id.asc()",
    )
    categories = db.relationship("Category", secondary=product_categories, lazy="selectin")
    tags = db.relationship("Tag", secondary=product_tags, lazy="selectin")

    @property
    def discount_percent(self):
        mrp = Decimal(self.mrp or 0)
        if mrp <= 0:
            return 0
        pct = (mrp - Decimal(self.selling_price or 0)) / mrp * 100
        return int(pct.quantize(Decimal("1"), rounding=ROUND_HALF_UP))

    def primary_image(self):
        for img in self.images:
            if img.is_primary:
                return img.image_url
        return self.images[0].image_url if self.images else None

    def as_list_item(self):
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "description": self.description,
            "brand": self.brand,
            "mrp": as_float(self.mrp),
            "selling_price": as_float(self.selling_price),
            "discount_percent": self.discount_percent,
            "is_featured": self.is_featured,
            "primary_image": self.primary_image(),
            "categories": [c.as_brief() for c in self.categories],
            "created_at": isoformat(self.created_at),
        }

    def as_api(self):
        data = self.as_list_item()
        data.update({
            "is_active": self.is_active,
            "images": [img.as_api() for img in self.images],
            "variants": [v.as_api() for v in self.variants if v.is_active],
            "tags": [t.as_dict() for t in self.tags],
            "updated_at": isoformat(self.updated_at),
        })
        return data


class ProductImage(db.Model):
    __tablename__ = "product_images"

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    image_url = db.Column(db.String(1024), nullable=False)
    is_primary = db.Column(db.Boolean, nullable=False, default=False)
    display_order = db.Column(db.Integer, nullable=False, default=0)

    def as_api(self):
        return {
            "id": self.id,
            "image_url": self.image_url,
            "is_primary": self.is_primary,
            "display_order": self.display_order,
        }


class Variant(db.Model):
    __tablename__ = "product_variants"
    __table_args__ = (
        db.CheckConstraint("stock_quantity >= 0", name="ck_variant_stock_non_negative"),
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    sku_code = db.Column(db.String(64), nullable=False, unique=True, index=True)
    color = db.Column(db.String(64))
    size = db.Column(db.String(32))
    stock_quantity = db.Column(db.Integer, nullable=False, default=0)
    price_override = db.Column(db.Numeric(12, 2), nullable=True)
    image_url = db.Column(db.String(1024))
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    def unit_price(self):
        # override wins, otherwise the product's selling price
        if self.price_override is not None:
            return Decimal(self.price_override)
        return Decimal(self.product.selling_price)

    @property
    def is_available(self):
        return bool(self.is_active and self.product is not None and self.product.is_active)

    def as_api(self):
        return {
            "id": self.id,
            "product_id": self.product_id,
            "sku_code": self.sku_code,
            "color": self.color,
            "size": self.size,
            "stock_quantity": self.stock_quantity,
            "price_override": as_float(self.price_override),
            "price": as_float(self.unit_price()),
            "image_url": self.image_url,
            "is_active": self.is_active,
        }
