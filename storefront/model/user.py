# --- storefront/model/user.py ---
from werkzeug.security import generate_password_hash, check_password_hash

from ..extensions import db
from ..utils.parse import utcnow, isoformat
from .types import Role


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    firebase_uid = db.Column(db.String(128), unique=True, nullable=True, index=True)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    name = db.Column(db.String(180), nullable=True)
    avatar_url = db.Column(db.String(1024))
    phone_number = db.Column(db.String(50))
    password_hash = db.Column(db.String(256), nullable=True)
    role = db.Column(db.String(20), nullable=False, default=Role.CUSTOMER, index=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    last_login_at = db.Column(db.DateTime)

    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        if not self.password_hash:
            return False
        return check_password_hash(self.password_hash, password)

    @property
    def is_admin(self):
        return self.role == Role.ADMIN

    def as_dict(self):
        return {
            "id": self.id,
            "firebase_uid": self.firebase_uid,
            "email": self.email,
            "name": self.name,
            "avatar_url": self.avatar_url,
            "phone_number": self.phone_number,
            "role": self.role,
            "is_active": self.is_active,
            "last_login_at": isoformat(self.last_login_at),
            "created_at": isoformat(self.created_at),
        }

    def as_brief(self):
        return {"id": self.id, "name": self.name, "email": self.email, "phone_number": self.phone_number}
