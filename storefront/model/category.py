# --- storefront/model/category.py ---
from ..extensions import db
from ..utils.parse import utcnow, isoformat


# ---------------- CATEGORY ----------------
class Category(db.Model):
    __tablename__ = "categories"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False, unique=True)
    slug = db.Column(db.String(160), nullable=False, unique=True, index=True)
    parent_id = db.Column(db.Integer, db.ForeignKey("categories.id"), nullable=True, index=True)
    description = db.Column(db.Text)
    image_url = db.Column(db.String(1024))
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    children = db.relationship(
        "Category",
        backref=db.backref("parent", remote_side=[id]),
        lazy="selectin",
        order_by="Category.name.asc()",
    )

    def as_brief(self):
        return {"id": self.id, "name": self.name, "slug": self.slug, "image_url": self.image_url}

    def as_dict(self, with_children=False):
        data = {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "parent_id": self.parent_id,
            "description": self.description,
            "image_url": self.image_url,
            "is_active": self.is_active,
            "created_at": isoformat(self.created_at),
        }
        if with_children:
            data["children"] = [c.as_dict(with_children=True) for c in self.children if c.is_active]
        return data


# ---------------- TAG ----------------
class Tag(db.Model):
    __tablename__ = "tags"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(80), nullable=False, unique=True)
    slug = db.Column(db.String(120), nullable=False, unique=True, index=True)
    created_at = db.Column(db.DateTime, default=utcnow)

    def as_dict(self):
        return {"id": self.id, "name": self.name, "slug": self.slug}
