"""
Namespace scoping helpers.

Every row belongs to exactly one application namespace (the
APP_NAMESPACE config value, or the X-App-Namespace request header when a
request sets it). Services call current_namespace() instead of reading
config directly so one process can serve several shops.

This is data scoping only; there is no permission enforcement here.
"""

from flask import current_app, g, has_request_context, request

NAMESPACE_HEADER = "X-App-Namespace"


def current_namespace() -> str:
    if hasattr(g, "namespace") and g.namespace:
        return g.namespace
    if has_request_context():
        header = (request.headers.get(NAMESPACE_HEADER) or "").strip()
        if header:
            return header
    return current_app.config["APP_NAMESPACE"]
