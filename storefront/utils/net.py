# storefront/utils/net.py
from flask import request


def get_client_ip():
    # honor proxies/load balancers if present
    xff = request.headers.get('X-Forwarded-For', '')
    if xff:
        # first ip in list is original client
        return xff.split(',')[0].strip()
    return request.headers.get('X-Real-IP') or request.remote_addr or None


def bearer_token():
    header = request.headers.get("Authorization", "")
    if header.startswith("Bearer "):
        return header[7:].strip() or None
    return None
