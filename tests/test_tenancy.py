"""
Unit tests for the tenancy filter advisor.
"""

import uuid

import pytest

from lora_auth.errors import NotAuthorizedError
from lora_auth.models import ListFilter, TenancyScope
from lora_auth.tenancy import UNFILTERED_MESSAGE, list_filter, require_filter

from identity_fixtures import ADMIN_KEY, APP_1, APP_1_KEY, ORG_1, ORG_1_KEY, user_id

ADMIN = TenancyScope(is_admin=True, user_id=1, organization_id=None, application_id=None)
USER = TenancyScope(is_admin=False, user_id=5, organization_id=None, application_id=None)
ORG_KEY = TenancyScope(is_admin=False, user_id=None, organization_id=3, application_id=None)
APP_KEY = TenancyScope(is_admin=False, user_id=None, organization_id=None, application_id=4)


# ── Tests: require_filter ────────────────────────────────────────────

def test_admin_may_list_unfiltered():
    require_filter(ADMIN)


def test_non_admin_must_filter():
    with pytest.raises(NotAuthorizedError) as e:
        require_filter(USER, 0, 0)
    assert e.value.message == UNFILTERED_MESSAGE == "client must be global admin for unfiltered request"
    assert e.value.code == "Unauthenticated"


@pytest.mark.parametrize("org,app", [(1, 0), (0, 2), (1, 2)])
def test_non_admin_with_filter(org, app):
    require_filter(USER, org, app)


# ── Tests: list_filter ───────────────────────────────────────────────

def test_admin_filter_follows_request():
    assert list_filter(ADMIN).unfiltered
    assert list_filter(ADMIN, 2, 0) == ListFilter(organization_id=2)


def test_user_filter_is_user_scoped():
    assert list_filter(USER) == ListFilter(user_id=5)
    assert list_filter(USER, 2, 7) == ListFilter(user_id=5, organization_id=2, application_id=7)


def test_organization_key_filter_is_pinned_to_its_org():
    assert list_filter(ORG_KEY, 9, 0) == ListFilter(organization_id=3)
    assert list_filter(ORG_KEY, 0, 8) == ListFilter(organization_id=3, application_id=8)


def test_application_key_filter_is_pinned_to_its_app():
    assert list_filter(APP_KEY, 1, 2) == ListFilter(application_id=4)


# ── Tests: scope ─────────────────────────────────────────────────────

def test_scope_of_global_admin(validator, as_user):
    scope = validator.scope(as_user("activeAdmin"))
    assert scope == TenancyScope(True, user_id("activeAdmin"), None, None)


def test_scope_of_regular_user(validator, as_user):
    scope = validator.scope(as_user("org0ActiveUser"))
    assert not scope.is_admin
    assert scope.user_id == user_id("org0ActiveUser")


def test_scope_of_inactive_user_is_denied(validator, as_user):
    with pytest.raises(NotAuthorizedError):
        validator.scope(as_user("inactiveAdmin"))


@pytest.mark.parametrize("key_id,expected", [
    (ADMIN_KEY, TenancyScope(True, None, None, None)),
    (ORG_1_KEY, TenancyScope(False, None, ORG_1, None)),
    (APP_1_KEY, TenancyScope(False, None, None, APP_1)),
])
def test_scope_of_api_keys(validator, as_key, key_id, expected):
    assert validator.scope(as_key(key_id)) == expected


def test_scope_of_unknown_key_is_denied(validator, as_key):
    with pytest.raises(NotAuthorizedError):
        validator.scope(as_key(uuid.uuid4()))
