"""
Request authorization helpers for the Flask API.
"""

import sys
from functools import wraps

from flask import current_app, jsonify, request

from lora_auth.errors import AuthError
from lora_auth.validator import Validator

EXTENSION_KEY = "lora_auth.validator"


def get_validator() -> Validator:
    return current_app.extensions[EXTENSION_KEY]


def rule_required(*factories):
    """Protect an endpoint with one or more rules.

    Each factory receives the view's URL arguments and returns a Rule.
    The verified claims are attached to the request as request.claims.
    """
    def wrapper(f):
        @wraps(f)
        def decorated(*args, **kwargs):
            rules = [factory(**kwargs) for factory in factories]
            request.claims = get_validator().validate(request.headers, *rules)
            return f(*args, **kwargs)
        return decorated
    return wrapper


def register_error_handlers(app):
    """Report every error as {"error": message, "code": status name}."""

    @app.errorhandler(AuthError)
    def auth_error(e: AuthError):
        return jsonify({"error": e.message, "code": e.code}), e.http_status

    @app.errorhandler(404)
    def not_found(e):
        return jsonify({"error": f"no such endpoint: {request.path}", "code": "NotFound"}), 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return jsonify({"error": f"{request.method} is not supported on {request.path}",
                        "code": "Unimplemented"}), 405

    @app.errorhandler(500)
    def internal_error(e):
        print(f"[ERROR] {request.method} {request.path}: {e}", file=sys.stderr)
        return jsonify({"error": "internal error", "code": "Internal"}), 500
