#!/usr/bin/env python3
"""
Bootstrap an admin API key.
Creates the identity tables if they are missing, then stores a new admin
key in DB_URI and prints its id and bearer token.
"""

import sys

from lora_auth import store as identity
from lora_auth.config import get_env
from lora_auth.database import IdentityStore, init_engine
from lora_auth.errors import AuthError
from lora_auth.schema import create_schema


def main(name="bootstrap-admin"):
    engine = init_engine()
    secret = get_env("JWT_SECRET")

    print("[init] Ensuring identity schema...")
    create_schema(engine)

    try:
        key, token = identity.create_api_key(IdentityStore(engine), name=name, secret=secret, is_admin=True)
    except AuthError as e:
        print(f"[ERROR] Could not create API key: {e.message}", file=sys.stderr)
        sys.exit(1)

    print("=" * 70)
    print("Admin API Key")
    print("=" * 70)
    print(f"  id:    {key.id}")
    print(f"  name:  {key.name}")
    print(f"  token: {token}")
    print("=" * 70)
    print("Send it as 'Authorization: Bearer <token>'. Delete the row to revoke it.")
    print("=" * 70)


if __name__ == "__main__":
    main(*sys.argv[1:2])
