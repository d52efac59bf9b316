"""
Unit tests for the rule catalog and rule constructors.
"""

import pytest

from lora_auth import catalog
from lora_auth.catalog import (
    ADMIN_KEY,
    GLOBAL_ADMIN,
    KEY_SUBJECT,
    RULE_ACTIONS,
    RULE_PARAMS,
    RULES,
    USER_SUBJECT,
    Action,
    Rule,
    RuleCatalog,
    build_rule,
)
from lora_auth.errors import ConfigError, MalformedRequestError, UnsupportedActionError
from lora_auth.predicate import Clause


# ── Tests: construction ──────────────────────────────────────────────

def test_catalog_is_complete():
    cat = RuleCatalog()
    expected = {(name, action) for name, actions in RULE_ACTIONS.items() for action in actions}
    assert set(cat.keys()) == expected
    assert len(cat) == len(expected)


def test_every_rule_has_a_constructor_and_params():
    assert set(RULES) == set(RULE_ACTIONS) == set(RULE_PARAMS)


def test_global_admin_is_first_clause():
    cat = RuleCatalog()
    open_user = (Clause(USER_SUBJECT),)
    for key in cat.keys():
        entry = cat.lookup(Rule(*key))
        if entry.user.clauses == open_user:
            continue
        assert entry.user.clauses[0] == Clause(USER_SUBJECT + (GLOBAL_ADMIN,)), key


def test_admin_key_is_first_api_key_clause():
    cat = RuleCatalog()
    open_key = (Clause(KEY_SUBJECT),)
    for key in cat.keys():
        entry = cat.lookup(Rule(*key))
        if entry.api_key.never or entry.api_key.clauses == open_key:
            continue
        assert entry.api_key.clauses[0] == Clause(KEY_SUBJECT + (ADMIN_KEY,)), key


def test_every_user_clause_requires_active_subject():
    cat = RuleCatalog()
    for key in cat.keys():
        for clause in cat.lookup(Rule(*key)).user.clauses:
            assert clause.atoms[:2] == USER_SUBJECT, key


def test_active_user_never_admits_api_keys():
    entry = RuleCatalog().lookup(catalog.active_user())
    assert entry.api_key.never
    assert entry.user.clauses == (Clause(USER_SUBJECT),)


def test_disable_assign_existing_users_changes_three_entries():
    relaxed, strict = RuleCatalog(False), RuleCatalog(True)
    changed = {
        key for key in relaxed.keys()
        if relaxed.lookup(Rule(*key)) != strict.lookup(Rule(*key))
    }
    assert changed == {
        ("users_access", Action.LIST),
        ("organization_users_access", Action.CREATE),
        ("application_users_access", Action.CREATE),
    }
    for key in changed:
        assert strict.lookup(Rule(*key)).user.clauses == (Clause(USER_SUBJECT + (GLOBAL_ADMIN,)),)
        assert strict.disable_assign_existing_users


def test_lookup_of_unknown_rule():
    with pytest.raises(UnsupportedActionError):
        RuleCatalog().lookup(Rule("no_such_rule", Action.READ))


# ── Tests: Action ────────────────────────────────────────────────────

@pytest.mark.parametrize("value,expected", [
    ("create", Action.CREATE),
    ("Read", Action.READ),
    ("UPDATE_PROFILE", Action.UPDATE_PROFILE),
    ("adr-algorithms", Action.ADR_ALGORITHMS),
    (Action.LIST, Action.LIST),
])
def test_action_parse(value, expected):
    assert Action.parse(value) is expected


def test_action_parse_unknown():
    with pytest.raises(UnsupportedActionError):
        Action.parse("explode")


# ── Tests: rule constructors ─────────────────────────────────────────

def test_constructor_builds_rule_value():
    rule = catalog.gateways_access(Action.CREATE, 2)
    assert rule == Rule("gateways_access", Action.CREATE, (("organization_id", 2),))
    assert rule.params == {"organization_id": 2}


def test_constructor_accepts_action_names():
    assert catalog.node_access("read", "0102030405060708").action is Action.READ


@pytest.mark.parametrize("build", [
    lambda: catalog.user_access(Action.CREATE, 1),
    lambda: catalog.organization_user_access(Action.LIST, 1, 1),
    lambda: catalog.api_key_access(Action.READ, "aaaaaaaa-0000-0000-0000-000000000001"),
    lambda: catalog.service_profile_access(Action.LIST, "11111111-1111-1111-1111-111111111111"),
    lambda: catalog.network_server_access(Action.CREATE, 1),
    lambda: catalog.organizations_access(Action.READ),
    lambda: catalog.gateways_access(None, 1),
])
def test_unsupported_action_is_a_config_error(build):
    with pytest.raises(UnsupportedActionError) as e:
        build()
    assert isinstance(e.value, ConfigError)


@pytest.mark.parametrize("build", [
    lambda: catalog.node_access(Action.READ, "not-hex"),
    lambda: catalog.node_access(Action.READ, "0102"),
    lambda: catalog.gateway_access(Action.READ, b"\x01\x02"),
    lambda: catalog.service_profile_access(Action.READ, "nope"),
    lambda: catalog.api_key_access(Action.DELETE, "1234"),
    lambda: catalog.organization_access(Action.READ, -1),
    lambda: catalog.organization_access(Action.READ, "one"),
    lambda: catalog.applications_access(Action.LIST, True),
])
def test_malformed_identifiers(build):
    with pytest.raises(MalformedRequestError) as e:
        build()
    assert e.value.code == "InvalidArgument"


def test_eui_forms_are_normalised():
    expected = bytes.fromhex("0102030405060708")
    assert catalog.node_access(Action.READ, "01-02-03-04-05-06-07-08").params["dev_eui"] == expected
    assert catalog.gateway_access(Action.READ, expected).params["mac"] == expected


def test_uuid_arguments_are_bound_as_text():
    rule = catalog.multicast_group_access(Action.READ, "55555555-5555-5555-5555-555555555555")
    assert rule.params["multicast_group_id"] == "55555555-5555-5555-5555-555555555555"


def test_fuota_defaults():
    rule = catalog.fuota_deployments_access(Action.LIST)
    assert rule.params == {"organization_id": 0, "dev_eui": None}


# ── Tests: build_rule ────────────────────────────────────────────────

def test_build_rule_from_strings():
    assert build_rule("gateways_access", "create", ["1"]) == catalog.gateways_access(Action.CREATE, 1)
    assert build_rule("active_user", None, []) == catalog.active_user()
    assert build_rule("is_organization_admin", None, ["2"]) == catalog.is_organization_admin(2)


def test_build_rule_unknown_name():
    with pytest.raises(ConfigError):
        build_rule("launch_missiles", "create", [])
