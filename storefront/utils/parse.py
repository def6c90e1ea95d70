# ------- storefront/utils/parse.py -------
import re
from datetime import datetime, timezone


def slugify(text):
    text = (text or "").strip().lower()
    text = re.sub(r"[^a-z0-9]+", "-", text)
    return text.strip("-")


def parse_bool(v, default=False):
    if v is None:
        return default
    if isinstance(v, bool):
        return v
    return str(v).strip().lower() in {"1", "true", "yes", "y", "on"}


def parse_int(v, default=0):
    try:
        return int(v)
    except (TypeError, ValueError):
        return default


def parse_opt_int(v):
    if v is None or isinstance(v, bool):
        return None
    if isinstance(v, str) and v.strip().lower() in {"", "null"}:
        return None
    try:
        return int(v)
    except (TypeError, ValueError):
        return None


def parse_iso8601(s):
    """Naive-UTC datetime from an ISO string (trailing Z allowed), else None."""
    if not s:
        return None
    if isinstance(s, datetime):
        dt = s
    else:
        s = str(s).strip()
        if s.endswith("Z"):
            s = s[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(s)
        except ValueError:
            return None
    if dt.tzinfo:
        return dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def utcnow():
    # stored datetimes are naive UTC
    return datetime.now(timezone.utc).replace(tzinfo=None)


def isoformat(dt):
    return dt.isoformat() if dt else None
