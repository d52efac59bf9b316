"""
Bearer-token parsing and issuance.

A request carries its credential in the `authorization` metadata entry,
either as `Bearer <token>` or, for legacy clients, as the raw token.
The token is a JWT signed with a pre-shared secret; exactly one signing
algorithm is accepted per parser.
"""

import re
import sys
import time
import uuid
from typing import Any, Optional

import jwt

from lora_auth.config import JWT_ALGORITHM, SESSION_TTL_MINUTES, TOKEN_AUDIENCE, TOKEN_ISSUER
from lora_auth.errors import (
    ConfigError,
    ExpiredTokenError,
    InvalidAlgorithmError,
    InvalidTokenError,
    MalformedCredentialError,
    NoAuthorizationError,
    NoMetadataError,
    WrongAudienceError,
)
from lora_auth.models import SUBJECT_API_KEY, SUBJECT_USER, Claims, UserRecord

AUTHORIZATION_KEY = "authorization"
BEARER_RE = re.compile(r"^bearer (.*)$", re.IGNORECASE)


def token_from_metadata(metadata: Any) -> str:
    """Pull the bearer token out of request metadata.

    Accepts a mapping (dict, Flask headers), a sequence of (key, value)
    pairs as gRPC hands it over, or None.
    """
    if metadata is None:
        raise NoMetadataError()
    if hasattr(metadata, "items"):
        pairs = list(metadata.items())
    elif isinstance(metadata, (list, tuple)):
        pairs = list(metadata)
    else:
        raise NoMetadataError()

    values = []
    for pair in pairs:
        if not isinstance(pair, (list, tuple)) or len(pair) != 2:
            raise MalformedCredentialError("malformed metadata")
        key, item = pair
        if str(key).lower() != AUTHORIZATION_KEY:
            continue
        if isinstance(item, (list, tuple)):
            values.extend(item)
        else:
            values.append(item)

    # exactly one authorization value
    value = values[0] if len(values) == 1 else None
    if not value or not isinstance(value, str):
        raise NoAuthorizationError()

    match = BEARER_RE.match(value)
    if match:
        return match.group(1)

    print("[WARN] Deprecated Authorization header, use 'Bearer <token>'", file=sys.stderr)
    return value


def _as_int(value, claim: str) -> int:
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidTokenError(f"invalid {claim} claim")
    return value


class CredentialParser:
    """Verifies bearer tokens and turns them into Claims."""

    def __init__(self, secret: str, algorithm: str = JWT_ALGORITHM):
        if not secret:
            raise ConfigError("jwt secret must be set")
        self.secret = secret
        self.algorithm = algorithm

    def parse(self, metadata: Any) -> Claims:
        return self.decode(token_from_metadata(metadata))

    def decode(self, token: str) -> Claims:
        try:
            payload = jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                audience=TOKEN_AUDIENCE,
                options={"require": ["sub"]},
            )
        except jwt.InvalidAlgorithmError as e:
            raise InvalidAlgorithmError(str(e)) from e
        except jwt.ExpiredSignatureError as e:
            raise ExpiredTokenError("token is expired") from e
        except jwt.InvalidAudienceError as e:
            raise WrongAudienceError() from e
        except jwt.MissingRequiredClaimError as e:
            if e.claim == "aud":
                raise WrongAudienceError() from e
            raise InvalidTokenError(str(e)) from e
        except jwt.ImmatureSignatureError as e:
            raise InvalidTokenError("token is not valid yet") from e
        except jwt.InvalidSignatureError as e:
            raise InvalidTokenError("signature is invalid") from e
        except jwt.InvalidTokenError as e:
            raise InvalidTokenError(str(e)) from e

        return claims_from_payload(payload)


def claims_from_payload(payload: dict) -> Claims:
    """Build Claims from a verified payload, rejecting mixed subjects."""
    subject = payload.get("sub")
    user_id = _as_int(payload.get("user_id"), "user_id")
    username = payload.get("username") or ""
    if not isinstance(username, str):
        raise InvalidTokenError("invalid username claim")

    api_key_id: Optional[uuid.UUID] = None
    raw_key_id = payload.get("api_key_id")
    if raw_key_id:
        try:
            api_key_id = uuid.UUID(str(raw_key_id))
        except ValueError:
            raise InvalidTokenError("invalid api_key_id claim") from None

    if subject == SUBJECT_USER:
        if api_key_id is not None:
            raise InvalidTokenError("user token must not carry an api_key_id")
        if not user_id and not username:
            raise InvalidTokenError("user token must carry user_id or username")
    elif subject == SUBJECT_API_KEY:
        if user_id or username:
            raise InvalidTokenError("api_key token must not carry user claims")
        if api_key_id is None:
            raise InvalidTokenError("api_key token must carry an api_key_id")
    else:
        raise InvalidTokenError(f"unknown subject: {subject!r}")

    audience = payload.get("aud")
    if isinstance(audience, list):
        audience = TOKEN_AUDIENCE

    return Claims(
        subject=subject,
        username=username,
        user_id=user_id,
        api_key_id=api_key_id,
        audience=audience,
        issuer=payload.get("iss"),
        expires_at=payload.get("exp"),
        not_before=payload.get("nbf"),
    )


# ── Issuance ─────────────────────────────────────────────────────────

def encode_claims(claims: Claims, secret: str, algorithm: str = JWT_ALGORITHM) -> str:
    return jwt.encode(claims.to_payload(), secret, algorithm=algorithm)


def user_token(user: UserRecord, secret: str, ttl_minutes: int = 0,
               algorithm: str = JWT_ALGORITHM, now: Optional[int] = None) -> str:
    """Issue a session token for a user.

    The lifetime is the user's own session_ttl when set, else ttl_minutes,
    else the configured default.
    """
    now = int(time.time()) if now is None else now
    ttl = user.session_ttl or ttl_minutes or SESSION_TTL_MINUTES
    claims = Claims(
        subject=SUBJECT_USER,
        username=user.email,
        user_id=user.id,
        issuer=TOKEN_ISSUER,
        not_before=now,
        expires_at=now + ttl * 60,
    )
    return encode_claims(claims, secret, algorithm)


def api_key_token(api_key_id: uuid.UUID, secret: str, algorithm: str = JWT_ALGORITHM,
                  now: Optional[int] = None) -> str:
    """Issue the non-expiring token bound to an API key row."""
    now = int(time.time()) if now is None else now
    claims = Claims(
        subject=SUBJECT_API_KEY,
        api_key_id=api_key_id,
        issuer=TOKEN_ISSUER,
        not_before=now,
    )
    return encode_claims(claims, secret, algorithm)
