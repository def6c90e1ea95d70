# --- storefront/__init__.py ---
import time
from datetime import datetime, timezone

from flask import Blueprint, Flask, current_app, g, request

from .config import Config
from .extensions import db, jwt, cors, migrate
from .services.identity import build_identity_verifier
from .services.payment_gateway import build_payment_gateway
from .utils.api import ok
from .utils.errors import register_error_handlers, register_jwt_handlers
from .utils.net import get_client_ip

_STARTED_AT = time.monotonic()


def create_app(config_object=None, identity_verifier=None, payment_gateway=None):
    app = Flask(__name__, instance_relative_config=True)

    cfg = config_object or Config
    app.config.from_object(cfg)
    cfg.init_app(app)
    app.logger.setLevel(app.config["LOG_LEVEL"])

    # Init extensions
    db.init_app(app)
    jwt.init_app(app)
    origins = app.config["CORS_ORIGINS"]
    if origins != "*":
        origins = [o.strip() for o in origins.split(",") if o.strip()]
    cors.init_app(app, resources={r"/*": {"origins": origins}})
    migrate.init_app(app, db)

    register_error_handlers(app)
    register_jwt_handlers()

    # collaborators are looked up per request from app.extensions
    app.extensions["identity_verifier"] = identity_verifier or build_identity_verifier(app.config)
    app.extensions["payment_gateway"] = (
        payment_gateway if payment_gateway is not None else build_payment_gateway(app.config)
    )
    if app.extensions["payment_gateway"] is None:
        app.logger.warning("payment gateway keys not configured; online payments disabled")

    _register_blueprints(app)
    _register_request_logging(app)

    from .cli import register_cli
    register_cli(app)

    if app.config.get("AUTO_CREATE_TABLES"):
        with app.app_context():
            db.create_all()

    return app


def _health():
    return ok("API is healthy", {
        "status": "ok",
        "uptime": round(time.monotonic() - _STARTED_AT, 3),
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": current_app.config.get("ENV"),
    })


def _register_blueprints(app):
    from .auth import bp as auth_bp
    from .user import bp as user_bp
    from .category import bp as category_bp
    from .tag import bp as tag_bp
    from .banner import bp as banner_bp
    from .product import bp as product_bp
    from .cart import bp as cart_bp
    from .order import bp as order_bp
    from .payment import bp as payment_bp
    from .coupon import bp as coupon_bp
    from .review import bp as review_bp
    from .wishlist import bp as wishlist_bp
    from .inventory import bp as inventory_bp

    # one parent per app: blueprints cannot be altered once registered
    api = Blueprint("api", __name__)
    api.add_url_rule("/health", "health", _health)
    api.register_blueprint(auth_bp, url_prefix="/auth")
    api.register_blueprint(user_bp, url_prefix="/users")
    api.register_blueprint(category_bp, url_prefix="/categories")
    api.register_blueprint(tag_bp, url_prefix="/tags")
    api.register_blueprint(banner_bp, url_prefix="/banners")
    api.register_blueprint(product_bp, url_prefix="/products")
    api.register_blueprint(cart_bp, url_prefix="/cart")
    api.register_blueprint(order_bp, url_prefix="/orders")
    api.register_blueprint(payment_bp, url_prefix="/payments")
    api.register_blueprint(coupon_bp, url_prefix="/coupons")
    api.register_blueprint(review_bp, url_prefix="/reviews")
    api.register_blueprint(wishlist_bp, url_prefix="/wishlist")
    api.register_blueprint(inventory_bp, url_prefix="/inventory")

    app.register_blueprint(api, url_prefix="/api/v1")
    app.register_blueprint(api, url_prefix="/api", name="api_unversioned")

    app.add_url_rule("/", "root", _health)
    app.add_url_rule("/health", "health", _health)


def _register_request_logging(app):
    @app.before_request
    def _start_timer():
        g.request_started = time.perf_counter()

    @app.after_request
    def _access_log(response):
        started = g.get("request_started")
        duration_ms = (time.perf_counter() - started) * 1000 if started else 0.0
        app.logger.info(
            "%s %s %s %.1fms %s",
            request.method, request.path, response.status_code, duration_ms, get_client_ip(),
        )
        return response
