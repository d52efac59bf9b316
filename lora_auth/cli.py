"""
Interactive console for checking authorization decisions.

Paste a bearer token, then enter rule lines such as
    gateways_access create 1
    node_access read 0102030405060708
    active_user
Each line is validated against the identity store and answered with
ADMIT or DENY.
"""

import shlex

from lora_auth.catalog import ACTIONLESS_RULES, RULES, build_rule
from lora_auth.config import get_env
from lora_auth.database import IdentityStore, init_engine
from lora_auth.errors import AuthError, ConfigError, MalformedCredentialError, NotAuthorizedError
from lora_auth.validator import Validator


def check_line(validator: Validator, metadata, line: str) -> str:
    """Evaluate one rule line and return the printed verdict."""
    parts = shlex.split(line)
    name, rest = parts[0], parts[1:]
    if name in ACTIONLESS_RULES:
        action, args = None, rest
    else:
        if not rest:
            return f"[ERROR] {name} needs an action"
        action, args = rest[0], rest[1:]

    try:
        rule = build_rule(name, action, args)
        validator.validate(metadata, rule)
    except NotAuthorizedError:
        return "DENY"
    except (ConfigError, TypeError) as e:
        return f"[ERROR] {e}"
    except AuthError as e:
        return f"[{e.code}] {e.message}"
    return "ADMIT"


def main():
    print("=== LoRa Auth: authorization console ===\n")

    store = IdentityStore(init_engine())
    validator = Validator(store, get_env("JWT_SECRET"))

    # ── Login ────────────────────────────────────────────────────────
    try:
        token = input("Enter bearer token (or 'quit'): ").strip()
    except (EOFError, KeyboardInterrupt):
        print("\nExiting.")
        return

    if not token or token.lower() in {"quit", "exit"}:
        print("Goodbye.")
        return

    metadata = {"authorization": f"Bearer {token}"}
    try:
        claims = validator.claims(metadata)
    except MalformedCredentialError as e:
        print("\n[ERROR] Token rejected.")
        print("Details:", e)
        return

    who = claims.username or claims.user_id if claims.subject == "user" else claims.api_key_id
    print(f"\n[auth] Subject: {claims.subject} ({who})")
    print(f"[auth] {len(RULES)} rules available; type 'rules' to list them")

    # ── REPL ─────────────────────────────────────────────────────────
    while True:
        try:
            line = input("\nrule> ").strip()
        except (EOFError, KeyboardInterrupt):
            print("\nExiting.")
            break

        if not line:
            continue
        if line.lower() in {"quit", "exit"}:
            print("Goodbye.")
            break
        if line.lower() == "rules":
            for name in sorted(RULES):
                print(f"  {name}")
            continue

        print(check_line(validator, metadata, line))


if __name__ == "__main__":
    main()
