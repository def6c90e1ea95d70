from flask import Blueprint

bp = Blueprint("coupon", __name__)

from . import routes  # noqa: E402,F401
