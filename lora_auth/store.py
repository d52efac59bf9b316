"""
Identity-store operations of the business layer.

Reads go through IdentityStore.query, writes through IdentityStore.with_tx.
Missing rows raise DoesNotExistError.
"""

import uuid
from typing import List, Optional, Tuple

from sqlalchemy import text

from lora_auth import schema
from lora_auth.config import API_KEY_NAME_MAX_LENGTH, DEFAULT_LIST_LIMIT
from lora_auth.credentials import api_key_token
from lora_auth.database import IdentityStore
from lora_auth.errors import DoesNotExistError, InvalidUsernameOrPasswordError, MalformedRequestError
from lora_auth.identifiers import parse_uuid
from lora_auth.models import APIKeyRecord, OrganizationLink, UserProfile, UserRecord
from lora_auth.passwords import hash_password, verify_password

USER_COLUMNS = "id, email, is_admin, is_active, session_ttl, password_hash, note, created_at, updated_at"
API_KEY_COLUMNS = "id, name, is_admin, organization_id, application_id, created_at"


def _user(row) -> UserRecord:
    return UserRecord(
        id=int(row["id"]),
        email=str(row["email"]),
        is_admin=bool(row["is_admin"]),
        is_active=bool(row["is_active"]),
        session_ttl=int(row["session_ttl"] or 0),
        password_hash=row["password_hash"] or "",
        note=row["note"] or "",
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _api_key(row) -> APIKeyRecord:
    return APIKeyRecord(
        id=uuid.UUID(str(row["id"])),
        name=str(row["name"]),
        is_admin=bool(row["is_admin"]),
        organization_id=int(row["organization_id"]) if row["organization_id"] is not None else None,
        application_id=int(row["application_id"]) if row["application_id"] is not None else None,
        created_at=row["created_at"],
    )


# ── Users ────────────────────────────────────────────────────────────

def get_user(store: IdentityStore, user_id: int) -> UserRecord:
    rows = store.query(f"select {USER_COLUMNS} from users where id = :id", {"id": user_id})
    if not rows:
        raise DoesNotExistError(f"user {user_id} does not exist")
    return _user(rows[0])


def get_user_by_email(store: IdentityStore, email: str) -> UserRecord:
    rows = store.query(f"select {USER_COLUMNS} from users where email = :email", {"email": email})
    if not rows:
        raise DoesNotExistError(f"user {email!r} does not exist")
    return _user(rows[0])


def create_user(store: IdentityStore, email: str, password: str = "", is_admin: bool = False,
                is_active: bool = True, session_ttl: int = 0, note: str = "") -> UserRecord:
    email = (email or "").strip()
    if not email:
        raise MalformedRequestError("email is required")
    password_hash = hash_password(password) if password else ""

    def insert(conn):
        result = conn.execute(schema.users.insert().values(
            email=email,
            is_admin=is_admin,
            is_active=is_active,
            session_ttl=session_ttl,
            password_hash=password_hash,
            note=note,
        ))
        return int(result.inserted_primary_key[0])

    return get_user(store, store.with_tx(insert))


def login_user_by_password(store: IdentityStore, email: str, password: str) -> UserRecord:
    """Return the active user matching the credentials.

    Unknown email, wrong password and inactive user are indistinguishable.
    """
    try:
        user = get_user_by_email(store, email)
    except DoesNotExistError:
        raise InvalidUsernameOrPasswordError() from None
    if not user.is_active or not verify_password(password, user.password_hash):
        raise InvalidUsernameOrPasswordError()
    return user


def get_profile(store: IdentityStore, user_id: int) -> UserProfile:
    user = get_user(store, user_id)
    rows = store.query("""
        select o.id as organization_id, o.name as organization_name,
               ou.is_admin, ou.is_device_admin, ou.is_gateway_admin,
               ou.created_at, ou.updated_at
        from organization_user ou
        inner join organizations o on o.id = ou.organization_id
        where ou.user_id = :user_id
        order by o.name
    """, {"user_id": user_id})
    links = [
        OrganizationLink(
            organization_id=int(r["organization_id"]),
            organization_name=str(r["organization_name"]),
            is_admin=bool(r["is_admin"]),
            is_device_admin=bool(r["is_device_admin"]),
            is_gateway_admin=bool(r["is_gateway_admin"]),
            created_at=r["created_at"],
            updated_at=r["updated_at"],
        )
        for r in rows
    ]
    return UserProfile(user=user, organizations=links)


# ── Organizations ────────────────────────────────────────────────────

def create_organization(store: IdentityStore, name: str, can_have_gateways: bool = False,
                        display_name: str = "") -> int:
    def insert(conn):
        result = conn.execute(schema.organizations.insert().values(
            name=name,
            display_name=display_name or name,
            can_have_gateways=can_have_gateways,
        ))
        return int(result.inserted_primary_key[0])

    return store.with_tx(insert)


def create_organization_user(store: IdentityStore, organization_id: int, user_id: int,
                             is_admin: bool = False, is_device_admin: bool = False,
                             is_gateway_admin: bool = False) -> None:
    store.with_tx(lambda conn: conn.execute(schema.organization_user.insert().values(
        organization_id=organization_id,
        user_id=user_id,
        is_admin=is_admin,
        is_device_admin=is_device_admin,
        is_gateway_admin=is_gateway_admin,
    )))


# ── API keys ─────────────────────────────────────────────────────────

def validate_api_key_scope(is_admin: bool, organization_id: Optional[int],
                           application_id: Optional[int]) -> None:
    """Exactly one of is_admin / organization_id / application_id may be set."""
    if is_admin and (organization_id or application_id):
        raise MalformedRequestError(
            "when is_admin is true, organization_id and application_id must be left blank")
    if not is_admin and bool(organization_id) == bool(application_id):
        raise MalformedRequestError(
            "the api key must be either of type admin, organization or application")


def create_api_key(store: IdentityStore, name: str, secret: str, is_admin: bool = False,
                   organization_id: Optional[int] = None,
                   application_id: Optional[int] = None) -> Tuple[APIKeyRecord, str]:
    """Store a new API key and return it with its bearer token."""
    name = (name or "").strip()
    if not name:
        raise MalformedRequestError("name is required")
    if len(name) > API_KEY_NAME_MAX_LENGTH:
        raise MalformedRequestError(f"name must not exceed {API_KEY_NAME_MAX_LENGTH} characters")
    validate_api_key_scope(is_admin, organization_id, application_id)

    key_id = uuid.uuid4()
    store.with_tx(lambda conn: conn.execute(schema.api_key.insert().values(
        id=str(key_id),
        name=name,
        is_admin=bool(is_admin),
        organization_id=organization_id or None,
        application_id=application_id or None,
    )))
    print(f"[api-key] Created {key_id} ({name})")
    return get_api_key(store, key_id), api_key_token(key_id, secret)


def get_api_key(store: IdentityStore, api_key_id) -> APIKeyRecord:
    key_id = parse_uuid(api_key_id)
    rows = store.query(f"select {API_KEY_COLUMNS} from api_key where id = :id", {"id": str(key_id)})
    if not rows:
        raise DoesNotExistError(f"api key {key_id} does not exist")
    return _api_key(rows[0])


def _api_key_filter(is_admin: bool, organization_id: Optional[int], application_id: Optional[int]):
    where = ["is_admin = :is_admin"]
    params = {"is_admin": bool(is_admin)}
    if organization_id:
        where.append("organization_id = :organization_id")
        params["organization_id"] = organization_id
    if application_id:
        where.append("application_id = :application_id")
        params["application_id"] = application_id
    return " and ".join(where), params


def get_api_key_count(store: IdentityStore, is_admin: bool = False,
                      organization_id: Optional[int] = None,
                      application_id: Optional[int] = None) -> int:
    where, params = _api_key_filter(is_admin, organization_id, application_id)
    rows = store.query(f"select count(*) as count from api_key where {where}", params)
    return int(rows[0]["count"])


def get_api_keys(store: IdentityStore, is_admin: bool = False,
                 organization_id: Optional[int] = None, application_id: Optional[int] = None,
                 limit: int = DEFAULT_LIST_LIMIT, offset: int = 0) -> List[APIKeyRecord]:
    where, params = _api_key_filter(is_admin, organization_id, application_id)
    params.update({"limit": limit, "offset": offset})
    rows = store.query(
        f"select {API_KEY_COLUMNS} from api_key where {where} order by name limit :limit offset :offset",
        params,
    )
    return [_api_key(r) for r in rows]


def delete_api_key(store: IdentityStore, api_key_id) -> None:
    key_id = parse_uuid(api_key_id)
    deleted = store.with_tx(
        lambda conn: conn.execute(text("delete from api_key where id = :id"), {"id": str(key_id)}).rowcount
    )
    if not deleted:
        raise DoesNotExistError(f"api key {key_id} does not exist")
    print(f"[api-key] Deleted {key_id}")
