# --- storefront/utils/api.py ---
from datetime import datetime, timezone

from flask import jsonify


def _now_iso():
    return datetime.now(timezone.utc).isoformat()


def api_ok(message, data=None):
    return {
        "success": True,
        "message": message,
        "data": data,
        "timestamp": _now_iso(),
    }


def api_error(message, data=None):
    return {
        "success": False,
        "message": message,
        "data": data,
        "timestamp": _now_iso(),
    }


# unified response helpers
def ok(message, data=None, status=200):
    r = jsonify(api_ok(message, data)); r.status_code = status; return r


def err(message, status=400, data=None):
    r = jsonify(api_error(message, data)); r.status_code = status; return r
