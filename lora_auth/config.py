"""
Centralised configuration constants and environment helpers.
"""

import os
import sys

from dotenv import load_dotenv

load_dotenv()

# ── Tokens ───────────────────────────────────────────────────────────
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
TOKEN_AUDIENCE = "as"
TOKEN_ISSUER = "as"
SESSION_TTL_MINUTES = int(os.getenv("SESSION_TTL_MINUTES", "1440"))

# ── Passwords ────────────────────────────────────────────────────────
PASSWORD_HASH_ITERATIONS = int(os.getenv("PASSWORD_HASH_ITERATIONS", "100000"))
PASSWORD_SALT_SIZE = 16

# ── API keys ─────────────────────────────────────────────────────────
API_KEY_NAME_MAX_LENGTH = 100
DEFAULT_LIST_LIMIT = 100


def get_env(name: str) -> str:
    """Return an environment variable or exit with an error message."""
    value = os.getenv(name)
    if not value:
        print(f"ERROR: env var {name} is not set", file=sys.stderr)
        sys.exit(1)
    return value


def get_bool_env(name: str, default: bool = False) -> bool:
    """Interpret an optional environment variable as a boolean flag."""
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


# Assigning existing users to organizations / applications is restricted
# to global admins when set. Read at startup, can be toggled at runtime on
# the Validator.
DISABLE_ASSIGN_EXISTING_USERS = get_bool_env("DISABLE_ASSIGN_EXISTING_USERS")
