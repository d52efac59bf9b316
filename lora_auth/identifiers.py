"""
Parsing of resource identifiers handed to rule constructors.

Failures raise MalformedRequestError, reported as InvalidArgument.
"""

import binascii
import uuid
from typing import Optional, Union

from lora_auth.errors import MalformedRequestError

EUI64_SIZE = 8


def parse_eui64(value: Union[bytes, bytearray, str]) -> bytes:
    """Return the 8-byte form of a DevEUI / gateway MAC (bytes or hex)."""
    if isinstance(value, (bytes, bytearray)):
        raw = bytes(value)
    elif isinstance(value, str):
        text = value.strip().replace("-", "").replace(":", "")
        try:
            raw = binascii.unhexlify(text)
        except (binascii.Error, ValueError):
            raise MalformedRequestError(f"invalid EUI64: {value!r}") from None
    else:
        raise MalformedRequestError(f"invalid EUI64: {value!r}")

    if len(raw) != EUI64_SIZE:
        raise MalformedRequestError(f"invalid EUI64: expected {EUI64_SIZE} bytes, got {len(raw)}")
    return raw


def parse_optional_eui64(value) -> Optional[bytes]:
    if value is None or value == "" or value == b"":
        return None
    return parse_eui64(value)


def parse_uuid(value: Union[uuid.UUID, str]) -> uuid.UUID:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        raise MalformedRequestError(f"invalid UUID: {value!r}") from None


def parse_id(value, name: str = "id") -> int:
    """Return a non-negative integer ID; 0 is the "no filter" sentinel."""
    if isinstance(value, bool):
        raise MalformedRequestError(f"invalid {name}: {value!r}")
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        raise MalformedRequestError(f"invalid {name}: {value!r}") from None
    if parsed < 0:
        raise MalformedRequestError(f"invalid {name}: must not be negative")
    return parsed
