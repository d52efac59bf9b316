import time

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from lora_auth.credentials import api_key_token, encode_claims
from lora_auth.database import IdentityStore
from lora_auth.models import SUBJECT_USER, Claims
from lora_auth.validator import Validator

from identity_fixtures import SECRET, USERS, seed


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    seed(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def store(engine):
    return IdentityStore(engine)


@pytest.fixture
def validator(store):
    return Validator(store, SECRET, disable_assign_existing_users=False)


def bearer(token: str) -> dict:
    return {"authorization": f"Bearer {token}"}


def user_claims(name: str, **overrides) -> Claims:
    now = int(time.time())
    values = dict(
        subject=SUBJECT_USER,
        username=name,
        user_id=USERS[name][0],
        issuer="as",
        not_before=now - 10,
        expires_at=now + 3600,
    )
    values.update(overrides)
    return Claims(**values)


@pytest.fixture
def as_user():
    """Metadata carrying a user token for a fixture user name."""
    def make(name: str, **overrides) -> dict:
        return bearer(encode_claims(user_claims(name, **overrides), SECRET))
    return make


@pytest.fixture
def as_key():
    """Metadata carrying the token of an API key id."""
    def make(key_id) -> dict:
        return bearer(api_key_token(key_id, SECRET))
    return make
