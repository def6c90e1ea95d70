# storefront/model/banner.py
from ..extensions import db
from ..utils.parse import utcnow, isoformat


class Banner(db.Model):
    __tablename__ = "banners"

    # columns admins may set directly; anything else lands in `extra`
    FIELDS = ("title", "subtext", "image_url", "link_url", "is_active", "display_order")

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(255))
    subtext = db.Column(db.String(512))
    image_url = db.Column(db.String(1024))
    link_url = db.Column(db.String(1024))
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    display_order = db.Column(db.Integer, nullable=False, default=0)
    extra = db.Column(db.JSON)

    created_at = db.Column(db.DateTime, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    def as_api(self):
        data = dict(self.extra or {})
        data.update({
            "id": self.id,
            "title": self.title,
            "subtext": self.subtext,
            "image_url": self.image_url,
            "link_url": self.link_url,
            "is_active": self.is_active,
            "display_order": self.display_order,
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        })
        return data
