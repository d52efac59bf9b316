"""
Flask route handlers for the internal authorization API.
"""

from dataclasses import asdict

from flask import jsonify, request

from lora_auth import store as identity
from lora_auth.api.auth import get_validator, rule_required
from lora_auth.catalog import Action, active_user, api_key_access, api_keys_access
from lora_auth.config import DEFAULT_LIST_LIMIT
from lora_auth.credentials import user_token
from lora_auth.identifiers import parse_id
from lora_auth.tenancy import list_filter


def _timestamp(value):
    if value is None:
        return None
    return value.isoformat() if hasattr(value, "isoformat") else str(value)


def _api_key_json(key):
    return {
        "id": str(key.id),
        "name": key.name,
        "is_admin": key.is_admin,
        "organization_id": key.organization_id,
        "application_id": key.application_id,
        "created_at": _timestamp(key.created_at),
    }


def _bool_arg(value) -> bool:
    return str(value or "").strip().lower() in {"1", "true", "yes", "on"}


def register_routes(app):
    """Register all API routes on the Flask *app*."""

    # ── Health ───────────────────────────────────────────────────────

    @app.route("/health", methods=["GET"])
    def health():
        database = get_validator().store.ping()
        return jsonify({
            "status": "healthy" if database else "unhealthy",
            "checks": {"database": database},
        }), 200 if database else 503

    # ── Sessions ─────────────────────────────────────────────────────

    @app.route("/api/internal/login", methods=["POST"])
    def login():
        if not request.is_json:
            return jsonify({"error": "Content-Type must be application/json"}), 400

        data = request.json
        email = str(data.get("email", "")).strip()
        password = str(data.get("password", ""))
        if not email or not password:
            return jsonify({"error": "email and password are required"}), 400

        validator = get_validator()
        user = identity.login_user_by_password(validator.store, email, password)
        print(f"[auth] Login {user.email} (id={user.id})")
        return jsonify({"jwt": user_token(user, validator.secret, algorithm=validator.parser.algorithm)}), 200

    @app.route("/api/internal/profile", methods=["GET"])
    @rule_required(lambda: active_user())
    def profile():
        validator = get_validator()
        user = validator.user(request.headers)
        prof = identity.get_profile(validator.store, user.id)
        return jsonify({
            "user": {
                "id": prof.user.id,
                "email": prof.user.email,
                "is_admin": prof.user.is_admin,
                "is_active": prof.user.is_active,
                "session_ttl": prof.user.session_ttl,
                "note": prof.user.note,
                "created_at": _timestamp(prof.user.created_at),
                "updated_at": _timestamp(prof.user.updated_at),
            },
            "organizations": [
                {
                    "organization_id": link.organization_id,
                    "organization_name": link.organization_name,
                    "is_admin": link.is_admin,
                    "is_device_admin": link.is_device_admin,
                    "is_gateway_admin": link.is_gateway_admin,
                }
                for link in prof.organizations
            ],
        }), 200

    # ── API keys ─────────────────────────────────────────────────────

    @app.route("/api/internal/api-keys", methods=["POST"])
    def create_api_key():
        if not request.is_json:
            return jsonify({"error": "Content-Type must be application/json"}), 400

        data = request.json
        organization_id = parse_id(data.get("organization_id") or 0, "organization_id")
        application_id = parse_id(data.get("application_id") or 0, "application_id")

        validator = get_validator()
        validator.validate(request.headers, api_keys_access(Action.CREATE, organization_id, application_id))

        key, token = identity.create_api_key(
            validator.store,
            name=data.get("name", ""),
            secret=validator.secret,
            is_admin=bool(data.get("is_admin", False)),
            organization_id=organization_id or None,
            application_id=application_id or None,
        )
        return jsonify({"id": str(key.id), "jwt_token": token}), 200

    @app.route("/api/internal/api-keys", methods=["GET"])
    def list_api_keys():
        organization_id = parse_id(request.args.get("organization_id", 0), "organization_id")
        application_id = parse_id(request.args.get("application_id", 0), "application_id")
        is_admin = _bool_arg(request.args.get("is_admin"))
        limit = parse_id(request.args.get("limit", DEFAULT_LIST_LIMIT), "limit")
        offset = parse_id(request.args.get("offset", 0), "offset")

        validator = get_validator()
        validator.validate(request.headers, api_keys_access(Action.LIST, organization_id, application_id))

        filters = dict(is_admin=is_admin, organization_id=organization_id or None,
                       application_id=application_id or None)
        total = identity.get_api_key_count(validator.store, **filters)
        keys = identity.get_api_keys(validator.store, limit=limit, offset=offset, **filters)
        return jsonify({
            "total_count": total,
            "result": [_api_key_json(k) for k in keys],
        }), 200

    @app.route("/api/internal/api-keys/<api_key_id>", methods=["DELETE"])
    @rule_required(lambda api_key_id: api_key_access(Action.DELETE, api_key_id))
    def delete_api_key(api_key_id):
        identity.delete_api_key(get_validator().store, api_key_id)
        return jsonify({}), 200

    # ── Tenancy ──────────────────────────────────────────────────────

    @app.route("/api/internal/scope", methods=["GET"])
    def scope():
        organization_id = parse_id(request.args.get("organization_id", 0), "organization_id")
        application_id = parse_id(request.args.get("application_id", 0), "application_id")

        tenancy = get_validator().scope(request.headers)
        narrowed = list_filter(tenancy, organization_id, application_id)
        return jsonify({
            "scope": asdict(tenancy),
            "filter": asdict(narrowed),
        }), 200
