import os

from flask import request


def is_cron_authorized():
    """
    Scheduled callers authenticate with CRON_SECRET, sent as a bearer token,
    an ``X-Cron-Secret`` header or a ``?token=`` query parameter.
    Without a configured secret nothing is authorized.
    """
    secret = os.environ.get("CRON_SECRET")
    if not secret:
        return False

    auth_header = request.headers.get("Authorization", "")
    if auth_header == f"Bearer {secret}":
        return True
    if request.headers.get("X-Cron-Secret") == secret:
        return True
    return request.args.get("token") == secret
