"""
Domain dataclasses used across the application.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

SUBJECT_USER = "user"
SUBJECT_API_KEY = "api_key"


@dataclass(frozen=True)
class Claims:
    """Verified payload of a bearer token."""
    subject: str                         # "user" or "api_key"
    username: str = ""
    user_id: int = 0
    api_key_id: Optional[uuid.UUID] = None
    audience: str = "as"
    issuer: Optional[str] = None
    expires_at: Optional[int] = None     # unix seconds
    not_before: Optional[int] = None     # unix seconds

    def to_payload(self) -> dict:
        """Claims as a token payload, keys in a fixed order, empties left out."""
        payload = {}
        if self.issuer is not None:
            payload["iss"] = self.issuer
        payload["aud"] = self.audience
        if self.not_before is not None:
            payload["nbf"] = self.not_before
        if self.expires_at is not None:
            payload["exp"] = self.expires_at
        payload["sub"] = self.subject
        if self.user_id:
            payload["user_id"] = self.user_id
        if self.username:
            payload["username"] = self.username
        if self.api_key_id is not None:
            payload["api_key_id"] = str(self.api_key_id)
        return payload


@dataclass
class UserRecord:
    id: int
    email: str
    is_admin: bool
    is_active: bool
    session_ttl: int = 0                 # minutes, 0 means default
    password_hash: str = field(default="", repr=False)
    note: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class APIKeyRecord:
    """An API key row; the scope triple holds exactly one populated position."""
    id: uuid.UUID
    name: str
    is_admin: bool
    organization_id: Optional[int]
    application_id: Optional[int]
    created_at: Optional[datetime] = None

    @property
    def kind(self) -> str:
        if self.is_admin:
            return "admin"
        if self.organization_id is not None:
            return "organization"
        return "application"


@dataclass
class OrganizationLink:
    organization_id: int
    organization_name: str
    is_admin: bool
    is_device_admin: bool
    is_gateway_admin: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class UserProfile:
    user: UserRecord
    organizations: List[OrganizationLink]


@dataclass(frozen=True)
class TenancyScope:
    """List-scope tuple of the authenticated subject."""
    is_admin: bool
    user_id: Optional[int]
    organization_id: Optional[int]
    application_id: Optional[int]


@dataclass(frozen=True)
class ListFilter:
    """Narrowing a list handler applies to its business query."""
    user_id: Optional[int] = None
    organization_id: Optional[int] = None
    application_id: Optional[int] = None

    @property
    def unfiltered(self) -> bool:
        return self.user_id is None and self.organization_id is None and self.application_id is None
