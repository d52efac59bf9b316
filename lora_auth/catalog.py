"""
Rule catalog: which (rule, action) pairs admit which subjects.

Every rule is a value (name, action, arguments). The catalog maps each
(name, action) pair to two predicates over the identity-join views, one
for user subjects and one for API-key subjects. Both are built from the
same clause table below; the subject prefix is prepended on construction.

The global-admin test (admin key for API keys) is the first clause of
every predicate that is not open to all active subjects. The catalog
checks that, and that every supported action has an entry, when it is
built.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple

from lora_auth.errors import ConfigError, UnsupportedActionError
from lora_auth.identifiers import parse_eui64, parse_id, parse_optional_eui64, parse_uuid
from lora_auth.predicate import (
    NEVER,
    Clause,
    Predicate,
    any_of,
    eq,
    is_true,
    not_null,
    param_eq,
    param_gt,
    params_of,
    same,
)


class Action(str, Enum):
    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"
    LIST = "list"
    UPDATE_PROFILE = "update_profile"
    ADR_ALGORITHMS = "adr_algorithms"

    @classmethod
    def parse(cls, value) -> "Action":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower().replace("-", "_"))
        except ValueError:
            raise UnsupportedActionError("action", value) from None


@dataclass(frozen=True)
class Rule:
    name: str
    action: Optional[Action]
    args: Tuple[Tuple[str, Any], ...] = ()

    @property
    def params(self) -> Dict[str, Any]:
        return dict(self.args)


@dataclass(frozen=True)
class Entry:
    user: Predicate
    api_key: Predicate

    def for_subject(self, subject: str) -> Predicate:
        return self.api_key if subject == "api_key" else self.user


# ── Atoms ────────────────────────────────────────────────────────────

GLOBAL_ADMIN = is_true("u.is_admin")
ADMIN_KEY = is_true("ak.is_admin")
ORG_ADMIN = is_true("ou.is_admin")
DEVICE_ADMIN = is_true("ou.is_device_admin")
GATEWAY_ADMIN = is_true("ou.is_gateway_admin")
CAN_HAVE_GATEWAYS = is_true("o.can_have_gateways")
KEY_HAS_ORG = not_null("ak.organization_id")

ORG = eq("o.id", "organization_id")
KEY_ORG = eq("ak.organization_id", "organization_id")
APP = eq("a.id", "application_id")
DEVICE = eq("d.dev_eui", "dev_eui")
GATEWAY = eq("g.mac", "mac")
SERVICE_PROFILE = eq("sp.service_profile_id", "service_profile_id")
DEVICE_PROFILE = eq("dp.device_profile_id", "device_profile_id")
NETWORK_SERVER = eq("ns.id", "network_server_id")
MULTICAST_GROUP = eq("mg.id", "multicast_group_id")
FUOTA_DEPLOYMENT = eq("fdd.fuota_deployment_id", "fuota_deployment_id")
TARGET_KEY = eq("tk.id", "api_key_id")
SELF = eq("u.id", "user_id")
MEMBER_SELF = eq("ou.user_id", "user_id")
KEY_OWNS_DEVICE_PROFILE = same("dp.organization_id", "ak.organization_id")

ORG_SET = param_gt("organization_id", 0)
NO_ORG = param_eq("organization_id", 0)
APP_SET = param_gt("application_id", 0)
NO_APP = param_eq("application_id", 0)

USER_SUBJECT = (
    any_of(eq("u.email", "subject_username"), eq("u.id", "subject_user_id")),
    is_true("u.is_active"),
)
KEY_SUBJECT = (eq("ak.id", "subject_api_key_id"),)
SUBJECT_PARAMS = frozenset({"subject_username", "subject_user_id", "subject_api_key_id"})

ANY = [[]]

C, R, U, D, L = Action.CREATE, Action.READ, Action.UPDATE, Action.DELETE, Action.LIST
UPDATE_PROFILE, ADR_ALGORITHMS = Action.UPDATE_PROFILE, Action.ADR_ALGORITHMS


# ── Rule arguments and supported actions ─────────────────────────────

RULE_PARAMS: Dict[str, Tuple[str, ...]] = {
    "active_user": (),
    "users_access": (),
    "user_access": ("user_id",),
    "organizations_access": (),
    "organization_access": ("organization_id",),
    "organization_users_access": ("organization_id",),
    "organization_user_access": ("organization_id", "user_id"),
    "is_organization_admin": ("organization_id",),
    "applications_access": ("organization_id",),
    "application_access": ("application_id",),
    "application_users_access": ("application_id",),
    "nodes_access": ("application_id",),
    "node_access": ("dev_eui",),
    "device_queue_access": ("dev_eui",),
    "gateways_access": ("organization_id",),
    "gateway_access": ("mac",),
    "service_profiles_access": ("organization_id",),
    "service_profile_access": ("service_profile_id",),
    "device_profiles_access": ("organization_id", "application_id"),
    "device_profile_access": ("device_profile_id",),
    "network_servers_access": ("organization_id",),
    "network_server_access": ("network_server_id",),
    "organization_network_server_access": ("organization_id", "network_server_id"),
    "gateway_profile_access": (),
    "multicast_groups_access": ("application_id",),
    "multicast_group_access": ("multicast_group_id",),
    "multicast_group_queue_access": ("multicast_group_id",),
    "api_keys_access": ("organization_id", "application_id"),
    "api_key_access": ("api_key_id",),
    "fuota_deployments_access": ("organization_id", "dev_eui"),
    "fuota_deployment_access": ("fuota_deployment_id",),
}

RULE_ACTIONS: Dict[str, Tuple[Optional[Action], ...]] = {
    "active_user": (None,),
    "users_access": (C, L),
    "user_access": (R, U, D, UPDATE_PROFILE),
    "organizations_access": (C, L),
    "organization_access": (R, U, D),
    "organization_users_access": (C, L),
    "organization_user_access": (R, U, D),
    "is_organization_admin": (None,),
    "applications_access": (C, L),
    "application_access": (R, U, D),
    "application_users_access": (C, L),
    "nodes_access": (C, L),
    "node_access": (R, U, D),
    "device_queue_access": (C, R, L, D),
    "gateways_access": (C, L),
    "gateway_access": (R, U, D),
    "service_profiles_access": (C, L),
    "service_profile_access": (R, U, D),
    "device_profiles_access": (C, L),
    "device_profile_access": (R, U, D),
    "network_servers_access": (C, L),
    "network_server_access": (R, U, D, ADR_ALGORITHMS),
    "organization_network_server_access": (R,),
    "gateway_profile_access": (C, R, U, D, L),
    "multicast_groups_access": (C, L),
    "multicast_group_access": (R, U, D),
    "multicast_group_queue_access": (C, R, L, D),
    "api_keys_access": (C, L),
    "api_key_access": (D,),
    "fuota_deployments_access": (C, R, L),
    "fuota_deployment_access": (R,),
}


# ── Clause table ─────────────────────────────────────────────────────

def _clause_table(disable_assign_existing_users: bool) -> Dict[Tuple[str, Optional[Action]], tuple]:
    """(name, action) -> (user clauses, api-key clauses or None)."""
    restrict = disable_assign_existing_users
    table: Dict[Tuple[str, Optional[Action]], tuple] = {}

    def add(name, actions: Iterable[Optional[Action]], user, key):
        for action in actions:
            table[(name, action)] = (user, key)

    ga, ak = [GLOBAL_ADMIN], [ADMIN_KEY]

    add("active_user", [None], ANY, None)

    # users
    add("users_access", [C], [ga, [ORG_ADMIN]], [ak])
    add("users_access", [L], [ga] if restrict else [ga, [ORG_ADMIN]], [ak])
    add("user_access", [R, UPDATE_PROFILE], [ga, [SELF]], [ak])
    add("user_access", [U, D], [ga], [ak])

    # organizations
    add("organizations_access", [C], [ga], [ak])
    add("organizations_access", [L], ANY, [ak])
    add("organization_access", [R], [ga, [ORG]], [ak, [KEY_ORG]])
    add("organization_access", [U], [ga, [ORG, ORG_ADMIN]], [ak])
    add("organization_access", [D], [ga], [ak])

    add("organization_users_access", [C],
        [ga] if restrict else [ga, [ORG, ORG_ADMIN]],
        [ak] if restrict else [ak, [KEY_ORG]])
    add("organization_users_access", [L], [ga, [ORG, ORG_ADMIN]], [ak, [KEY_ORG]])
    add("organization_user_access", [R],
        [ga, [ORG, ORG_ADMIN], [ORG, MEMBER_SELF]], [ak, [KEY_ORG]])
    add("organization_user_access", [U, D], [ga, [ORG, ORG_ADMIN]], [ak, [KEY_ORG]])
    add("is_organization_admin", [None], [ga, [ORG, ORG_ADMIN]], [ak, [KEY_ORG]])

    # applications
    add("applications_access", [C], [ga, [ORG, ORG_ADMIN]], [ak, [KEY_ORG]])
    add("applications_access", [L], [ga, [ORG_SET, ORG], [NO_ORG]], [ak, [KEY_ORG]])
    add("application_access", [R], [ga, [APP]], [ak, [APP]])
    add("application_access", [U, D], [ga, [APP, ORG_ADMIN]], [ak, [APP]])
    add("application_users_access", [C],
        [ga] if restrict else [ga, [APP, ORG_ADMIN]],
        [ak] if restrict else [ak, [KEY_HAS_ORG, APP]])
    add("application_users_access", [L], [ga, [APP]], [ak, [KEY_HAS_ORG, APP]])

    # devices
    add("nodes_access", [C], [ga, [APP, ORG_ADMIN], [APP, DEVICE_ADMIN]], [ak, [APP]])
    add("nodes_access", [L], [ga, [APP]], [ak, [APP]])
    add("node_access", [R], [ga, [DEVICE]], [ak, [DEVICE]])
    add("node_access", [U, D], [ga, [DEVICE, ORG_ADMIN], [DEVICE, DEVICE_ADMIN]], [ak, [DEVICE]])
    add("device_queue_access", [C, R, L, D], [ga, [DEVICE]], [ak, [DEVICE]])

    # gateways
    add("gateways_access", [C],
        [ga, [ORG, ORG_ADMIN, CAN_HAVE_GATEWAYS], [ORG, GATEWAY_ADMIN, CAN_HAVE_GATEWAYS]],
        [ak, [ORG, CAN_HAVE_GATEWAYS]])
    add("gateways_access", [L], [ga, [ORG_SET, ORG], [NO_ORG]], [ak, [ORG]])
    add("gateway_access", [R], [ga, [GATEWAY]], [ak, [GATEWAY]])
    add("gateway_access", [U, D], [ga, [GATEWAY, ORG_ADMIN], [GATEWAY, GATEWAY_ADMIN]], [ak, [GATEWAY]])

    # service profiles
    add("service_profiles_access", [C], [ga], [ak])
    add("service_profiles_access", [L], [ga, [ORG_SET, ORG], [NO_ORG]], [ak, [KEY_ORG]])
    add("service_profile_access", [R], [ga, [SERVICE_PROFILE]], [ak, [SERVICE_PROFILE]])
    add("service_profile_access", [U, D], [ga], [ak])

    # device profiles
    add("device_profiles_access", [C],
        [ga, [ORG, ORG_ADMIN, NO_APP], [ORG, DEVICE_ADMIN, NO_APP]],
        [ak, [KEY_ORG]])
    add("device_profiles_access", [L],
        [ga, [NO_APP, ORG_SET, ORG], [NO_ORG, APP_SET, APP], [NO_ORG, NO_APP]],
        [ak, [KEY_ORG, NO_APP], [APP, NO_ORG]])
    add("device_profile_access", [R], [ga, [DEVICE_PROFILE]], [ak, [DEVICE_PROFILE]])
    add("device_profile_access", [U, D],
        [ga, [DEVICE_PROFILE, ORG_ADMIN], [DEVICE_PROFILE, DEVICE_ADMIN]],
        [ak, [DEVICE_PROFILE, KEY_OWNS_DEVICE_PROFILE]])

    # network servers
    add("network_servers_access", [C], [ga], [ak])
    add("network_servers_access", [L], [ga, [ORG]], [ak, [KEY_ORG]])
    add("network_server_access", [R],
        [ga, [NETWORK_SERVER, ORG_ADMIN], [NETWORK_SERVER, GATEWAY_ADMIN]],
        [ak, [KEY_HAS_ORG, NETWORK_SERVER]])
    add("network_server_access", [ADR_ALGORITHMS], [ga, [NETWORK_SERVER]], [ak, [KEY_HAS_ORG, NETWORK_SERVER]])
    add("network_server_access", [U, D], [ga], [ak])
    add("organization_network_server_access", [R],
        [ga, [ORG, NETWORK_SERVER]], [ak, [KEY_ORG, NETWORK_SERVER]])

    # gateway profiles
    add("gateway_profile_access", [C, U, D], [ga], [ak])
    add("gateway_profile_access", [R, L], ANY, ANY)

    # multicast groups
    add("multicast_groups_access", [C],
        [ga, [APP, ORG_ADMIN], [APP, DEVICE_ADMIN]], [ak, [KEY_HAS_ORG, APP]])
    add("multicast_groups_access", [L], [ga, [APP]], [ak, [KEY_HAS_ORG, APP]])
    add("multicast_group_access", [R], [ga, [MULTICAST_GROUP]], [ak, [KEY_HAS_ORG, MULTICAST_GROUP]])
    add("multicast_group_access", [U, D],
        [ga, [MULTICAST_GROUP, ORG_ADMIN], [MULTICAST_GROUP, DEVICE_ADMIN]],
        [ak, [KEY_HAS_ORG, MULTICAST_GROUP]])
    add("multicast_group_queue_access", [C, R, L, D],
        [ga, [MULTICAST_GROUP]], [ak, [KEY_HAS_ORG, MULTICAST_GROUP]])

    # api keys
    add("api_keys_access", [C, L],
        [ga, [ORG_ADMIN, ORG_SET, NO_APP, ORG], [ORG_ADMIN, APP_SET, NO_ORG, APP]],
        [ak, [KEY_HAS_ORG, ORG_SET, NO_APP, KEY_ORG], [KEY_HAS_ORG, APP_SET, NO_ORG, APP]])
    add("api_key_access", [D], [ga, [ORG_ADMIN, TARGET_KEY]], [ak, [KEY_HAS_ORG, TARGET_KEY]])

    # fuota deployments
    add("fuota_deployments_access", [C],
        [ga, [ORG_SET, ORG, ORG_ADMIN], [DEVICE, ORG_ADMIN]],
        [ak, [ORG_SET, KEY_ORG], [DEVICE]])
    add("fuota_deployments_access", [R, L],
        [ga, [ORG_SET, ORG], [DEVICE]],
        [ak, [ORG_SET, KEY_ORG], [DEVICE]])
    add("fuota_deployment_access", [R], [ga, [FUOTA_DEPLOYMENT]], [ak, [FUOTA_DEPLOYMENT]])

    return table


def _predicate(prefix: tuple, clauses) -> Predicate:
    if clauses is None:
        return NEVER
    return Predicate(tuple(Clause(prefix + tuple(atoms)) for atoms in clauses))


class RuleCatalog:
    """Immutable (name, action) -> Entry mapping for one policy setting."""

    def __init__(self, disable_assign_existing_users: bool = False):
        self.disable_assign_existing_users = bool(disable_assign_existing_users)
        self._entries: Dict[Tuple[str, Optional[Action]], Entry] = {
            key: Entry(user=_predicate(USER_SUBJECT, user), api_key=_predicate(KEY_SUBJECT, api_key))
            for key, (user, api_key) in _clause_table(self.disable_assign_existing_users).items()
        }
        self._check()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key) -> bool:
        return key in self._entries

    def keys(self):
        return self._entries.keys()

    def lookup(self, rule: Rule) -> Entry:
        try:
            return self._entries[(rule.name, rule.action)]
        except KeyError:
            raise UnsupportedActionError(rule.name, rule.action) from None

    def _check(self) -> None:
        expected = {(name, a) for name, actions in RULE_ACTIONS.items() for a in actions}
        missing = expected - set(self._entries)
        extra = set(self._entries) - expected
        if missing or extra:
            raise ConfigError(f"rule catalog mismatch: missing={sorted(map(str, missing))} "
                              f"extra={sorted(map(str, extra))}")

        user_admin = Clause(USER_SUBJECT + (GLOBAL_ADMIN,))
        key_admin = Clause(KEY_SUBJECT + (ADMIN_KEY,))
        for (name, action), entry in self._entries.items():
            allowed = SUBJECT_PARAMS.union(RULE_PARAMS[name])
            for predicate in (entry.user, entry.api_key):
                unknown = set(params_of(predicate)) - allowed
                if unknown:
                    raise ConfigError(f"{name}/{action}: unbound parameters {sorted(unknown)}")
            if not _open(entry.user, USER_SUBJECT) and entry.user.clauses[0] != user_admin:
                raise ConfigError(f"{name}/{action}: global admin must be the first clause")
            if not entry.api_key.never and not _open(entry.api_key, KEY_SUBJECT) \
                    and entry.api_key.clauses[0] != key_admin:
                raise ConfigError(f"{name}/{action}: admin key must be the first clause")


def _open(predicate: Predicate, prefix: tuple) -> bool:
    """True when the predicate admits every (active) subject."""
    return predicate.clauses == (Clause(prefix),)


# ── Rule constructors ────────────────────────────────────────────────

def _rule(name: str, action, **args) -> Rule:
    supported = RULE_ACTIONS[name]
    parsed = None if action is None else Action.parse(action)
    if parsed not in supported:
        raise UnsupportedActionError(name, action)
    return Rule(name, parsed, tuple((k, args[k]) for k in RULE_PARAMS[name]))


def _org(value) -> int:
    return parse_id(value, "organization_id")


def _app(value) -> int:
    return parse_id(value, "application_id")


def active_user() -> Rule:
    return _rule("active_user", None)


def users_access(action) -> Rule:
    return _rule("users_access", action)


def user_access(action, user_id) -> Rule:
    return _rule("user_access", action, user_id=parse_id(user_id, "user_id"))


def organizations_access(action) -> Rule:
    return _rule("organizations_access", action)


def organization_access(action, organization_id) -> Rule:
    return _rule("organization_access", action, organization_id=_org(organization_id))


def organization_users_access(action, organization_id) -> Rule:
    return _rule("organization_users_access", action, organization_id=_org(organization_id))


def organization_user_access(action, organization_id, user_id) -> Rule:
    return _rule("organization_user_access", action,
                 organization_id=_org(organization_id), user_id=parse_id(user_id, "user_id"))


def is_organization_admin(organization_id) -> Rule:
    return _rule("is_organization_admin", None, organization_id=_org(organization_id))


def applications_access(action, organization_id) -> Rule:
    return _rule("applications_access", action, organization_id=_org(organization_id))


def application_access(action, application_id) -> Rule:
    return _rule("application_access", action, application_id=_app(application_id))


def application_users_access(action, application_id) -> Rule:
    return _rule("application_users_access", action, application_id=_app(application_id))


def nodes_access(action, application_id) -> Rule:
    return _rule("nodes_access", action, application_id=_app(application_id))


def node_access(action, dev_eui) -> Rule:
    return _rule("node_access", action, dev_eui=parse_eui64(dev_eui))


def device_queue_access(action, dev_eui) -> Rule:
    return _rule("device_queue_access", action, dev_eui=parse_eui64(dev_eui))


def gateways_access(action, organization_id) -> Rule:
    return _rule("gateways_access", action, organization_id=_org(organization_id))


def gateway_access(action, mac) -> Rule:
    return _rule("gateway_access", action, mac=parse_eui64(mac))


def service_profiles_access(action, organization_id) -> Rule:
    return _rule("service_profiles_access", action, organization_id=_org(organization_id))


def service_profile_access(action, service_profile_id) -> Rule:
    return _rule("service_profile_access", action,
                 service_profile_id=str(parse_uuid(service_profile_id)))


def device_profiles_access(action, organization_id, application_id) -> Rule:
    return _rule("device_profiles_access", action,
                 organization_id=_org(organization_id), application_id=_app(application_id))


def device_profile_access(action, device_profile_id) -> Rule:
    return _rule("device_profile_access", action,
                 device_profile_id=str(parse_uuid(device_profile_id)))


def network_servers_access(action, organization_id) -> Rule:
    return _rule("network_servers_access", action, organization_id=_org(organization_id))


def network_server_access(action, network_server_id) -> Rule:
    return _rule("network_server_access", action,
                 network_server_id=parse_id(network_server_id, "network_server_id"))


def organization_network_server_access(action, organization_id, network_server_id) -> Rule:
    return _rule("organization_network_server_access", action,
                 organization_id=_org(organization_id),
                 network_server_id=parse_id(network_server_id, "network_server_id"))


def gateway_profile_access(action) -> Rule:
    return _rule("gateway_profile_access", action)


def multicast_groups_access(action, application_id) -> Rule:
    return _rule("multicast_groups_access", action, application_id=_app(application_id))


def multicast_group_access(action, multicast_group_id) -> Rule:
    return _rule("multicast_group_access", action,
                 multicast_group_id=str(parse_uuid(multicast_group_id)))


def multicast_group_queue_access(action, multicast_group_id) -> Rule:
    return _rule("multicast_group_queue_access", action,
                 multicast_group_id=str(parse_uuid(multicast_group_id)))


def api_keys_access(action, organization_id=0, application_id=0) -> Rule:
    return _rule("api_keys_access", action,
                 organization_id=_org(organization_id), application_id=_app(application_id))


def api_key_access(action, api_key_id) -> Rule:
    return _rule("api_key_access", action, api_key_id=str(parse_uuid(api_key_id)))


def fuota_deployments_access(action, organization_id=0, dev_eui=None) -> Rule:
    return _rule("fuota_deployments_access", action,
                 organization_id=_org(organization_id), dev_eui=parse_optional_eui64(dev_eui))


def fuota_deployment_access(action, fuota_deployment_id) -> Rule:
    return _rule("fuota_deployment_access", action,
                 fuota_deployment_id=str(parse_uuid(fuota_deployment_id)))


RULES = {
    "active_user": active_user,
    "users_access": users_access,
    "user_access": user_access,
    "organizations_access": organizations_access,
    "organization_access": organization_access,
    "organization_users_access": organization_users_access,
    "organization_user_access": organization_user_access,
    "is_organization_admin": is_organization_admin,
    "applications_access": applications_access,
    "application_access": application_access,
    "application_users_access": application_users_access,
    "nodes_access": nodes_access,
    "node_access": node_access,
    "device_queue_access": device_queue_access,
    "gateways_access": gateways_access,
    "gateway_access": gateway_access,
    "service_profiles_access": service_profiles_access,
    "service_profile_access": service_profile_access,
    "device_profiles_access": device_profiles_access,
    "device_profile_access": device_profile_access,
    "network_servers_access": network_servers_access,
    "network_server_access": network_server_access,
    "organization_network_server_access": organization_network_server_access,
    "gateway_profile_access": gateway_profile_access,
    "multicast_groups_access": multicast_groups_access,
    "multicast_group_access": multicast_group_access,
    "multicast_group_queue_access": multicast_group_queue_access,
    "api_keys_access": api_keys_access,
    "api_key_access": api_key_access,
    "fuota_deployments_access": fuota_deployments_access,
    "fuota_deployment_access": fuota_deployment_access,
}

ACTIONLESS_RULES = frozenset({"active_user", "is_organization_admin"})


def build_rule(name: str, action: Optional[str], args: List[str]) -> Rule:
    """Build a rule from its name and positional string arguments."""
    try:
        constructor = RULES[name]
    except KeyError:
        raise ConfigError(f"unknown rule: {name}") from None
    if name in ACTIONLESS_RULES:
        return constructor(*args)
    return constructor(action, *args)
