from flask import Blueprint

bp = Blueprint("banner", __name__)

from . import routes  # noqa: E402,F401
