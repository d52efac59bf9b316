#!/usr/bin/env python3
"""
Generate a JWT_SECRET for signing bearer tokens.
The secret is checked by issuing and parsing a throwaway API-key token
with it before it is printed.
"""

import secrets
import sys
import uuid

from lora_auth.config import JWT_ALGORITHM
from lora_auth.credentials import CredentialParser, api_key_token

MIN_BYTES = 32


def new_secret(num_bytes: int = MIN_BYTES) -> str:
    if num_bytes < MIN_BYTES:
        raise ValueError(f"a signing secret needs at least {MIN_BYTES} bytes")
    secret = secrets.token_hex(num_bytes)

    token = api_key_token(uuid.uuid4(), secret, algorithm=JWT_ALGORITHM)
    CredentialParser(secret, JWT_ALGORITHM).decode(token)
    return secret


def main(num_bytes=MIN_BYTES):
    try:
        secret = new_secret(int(num_bytes))
    except ValueError as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        sys.exit(1)

    print(f"JWT_SECRET={secret}")
    print(f"[init] {JWT_ALGORITHM} secret of {len(secret) // 2} bytes. Add the line above to .env;",
          file=sys.stderr)
    print("[init] replacing it invalidates every issued session and API-key token.", file=sys.stderr)


if __name__ == "__main__":
    main(*sys.argv[1:2])
