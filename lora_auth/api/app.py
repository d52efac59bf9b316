"""
Flask application factory and server entry-point.
"""

import os
import sys
import traceback

from flask import Flask
from flask_cors import CORS

from lora_auth.api.auth import EXTENSION_KEY, register_error_handlers
from lora_auth.api.routes import register_routes
from lora_auth.config import DISABLE_ASSIGN_EXISTING_USERS, JWT_ALGORITHM, SESSION_TTL_MINUTES, get_env
from lora_auth.database import init_engine
from lora_auth.validator import Validator


def create_app(engine=None, secret=None, disable_assign_existing_users=None):
    """Build and return a fully configured Flask application."""
    app = Flask(__name__)
    CORS(app)

    # ── Initialise shared resources ──────────────────────────────────
    if disable_assign_existing_users is None:
        disable_assign_existing_users = DISABLE_ASSIGN_EXISTING_USERS
    try:
        if engine is None:
            print("[init] Initializing database connection...")
            engine = init_engine()
        secret = secret or get_env("JWT_SECRET")

        print("[init] Building rule catalog...")
        validator = Validator(engine, secret, JWT_ALGORITHM, disable_assign_existing_users)
        print(f"[init] {len(validator.catalog)} rule entries loaded")

        print("[init] ✓ API server ready")
    except Exception as e:
        print(f"[FATAL] Failed to initialize: {e}", file=sys.stderr)
        traceback.print_exc()
        sys.exit(1)

    app.extensions[EXTENSION_KEY] = validator

    # ── Register routes ──────────────────────────────────────────────
    register_error_handlers(app)
    register_routes(app)

    return app


def main():
    """Run the development server."""
    print("=" * 60)
    print("LoRa Auth – Internal Authorization API")
    print("=" * 60)

    app = create_app()

    host = os.getenv("API_HOST", "0.0.0.0")
    port = int(os.getenv("API_PORT", "8000"))
    debug = os.getenv("FLASK_ENV") == "development"

    print(f"\n[server] Starting Flask API on {host}:{port}")
    print(f"[server] Debug mode: {debug}")
    print(f"[server] JWT algorithm: {JWT_ALGORITHM}")
    print(f"[server] Session TTL: {SESSION_TTL_MINUTES} minutes")
    print("\nAPI Endpoints:")
    print(f"  - POST   http://{host}:{port}/api/internal/login")
    print(f"  - GET    http://{host}:{port}/api/internal/profile")
    print(f"  - POST   http://{host}:{port}/api/internal/api-keys")
    print(f"  - GET    http://{host}:{port}/api/internal/api-keys")
    print(f"  - DELETE http://{host}:{port}/api/internal/api-keys/<id>")
    print(f"  - GET    http://{host}:{port}/api/internal/scope")
    print(f"  - GET    http://{host}:{port}/health")
    print("\n" + "=" * 60)

    app.run(host=host, port=port, debug=debug, threaded=True)


if __name__ == "__main__":
    main()
