"""
PBKDF2 password hashing.

Stored format: PBKDF2$sha512$<iterations>$<b64 salt>$<b64 hash>

Hashes in passlib's own `$pbkdf2-sha512$` format (as written by
provisioning tools) are verified as well.
"""

import base64
import binascii

from passlib.context import CryptContext
from passlib.crypto.digest import pbkdf2_hmac
from passlib.utils import consteq, getrandbytes, rng

from lora_auth.config import PASSWORD_HASH_ITERATIONS, PASSWORD_SALT_SIZE

ALGORITHM = "sha512"
PREFIX = "PBKDF2"

pwd_context = CryptContext(schemes=["pbkdf2_sha512"])


def hash_password(password: str, iterations: int = PASSWORD_HASH_ITERATIONS) -> str:
    salt = getrandbytes(rng, PASSWORD_SALT_SIZE)
    return _format(password, salt, iterations)


def _format(password: str, salt: bytes, iterations: int) -> str:
    digest = pbkdf2_hmac(ALGORITHM, password.encode("utf-8"), salt, iterations)
    return "{}${}${}${}${}".format(
        PREFIX,
        ALGORITHM,
        iterations,
        base64.b64encode(salt).decode("ascii"),
        base64.b64encode(digest).decode("ascii"),
    )


def verify_password(password: str, stored: str) -> bool:
    """Check a password against a stored hash; malformed hashes never match."""
    stored = stored or ""
    if pwd_context.identify(stored, required=False):
        try:
            return pwd_context.verify(password, stored)
        except ValueError:
            return False

    parts = stored.split("$")
    if len(parts) != 5 or parts[0] != PREFIX:
        return False
    _, algorithm, iterations, salt_b64, hash_b64 = parts
    if algorithm != ALGORITHM:
        return False
    try:
        salt = base64.b64decode(salt_b64, validate=True)
        expected = base64.b64decode(hash_b64, validate=True)
        rounds = int(iterations)
    except (ValueError, binascii.Error):
        return False
    if rounds <= 0:
        return False
    digest = pbkdf2_hmac(ALGORITHM, password.encode("utf-8"), salt, rounds)
    return consteq(digest, expected)
