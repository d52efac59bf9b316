"""
Rule matrix for API-key subjects against the seeded identity store.
"""

import pytest

from lora_auth import catalog
from lora_auth.catalog import Action
from lora_auth.errors import NotAuthorizedError

from identity_fixtures import (
    ADMIN_KEY,
    APP_1,
    APP_1_KEY,
    APP_2,
    APP_2_KEY,
    DEV_1,
    DEV_2,
    DP_1,
    GW_1,
    MG_1,
    NS_1,
    ORG_1,
    ORG_1_KEY,
    ORG_2,
    ORG_2_KEY,
    SP_1,
    user_id,
)

C, R, U, D, L = Action.CREATE, Action.READ, Action.UPDATE, Action.DELETE, Action.LIST

MATRIX = [
    # the admin key passes every admin branch
    (ADMIN_KEY, catalog.users_access(C), True),
    (ADMIN_KEY, catalog.organizations_access(C), True),
    (ADMIN_KEY, catalog.user_access(D, user_id("activeUser")), True),
    (ADMIN_KEY, catalog.api_keys_access(C, 0, 0), True),

    # no API key is an active user
    (ADMIN_KEY, catalog.active_user(), False),
    (ORG_1_KEY, catalog.active_user(), False),

    # organization keys
    (ORG_1_KEY, catalog.organization_access(R, ORG_1), True),
    (ORG_1_KEY, catalog.organization_access(R, ORG_2), False),
    (ORG_1_KEY, catalog.organization_access(U, ORG_1), False),
    (ORG_1_KEY, catalog.organizations_access(L), False),
    (ORG_1_KEY, catalog.users_access(C), False),
    (ORG_1_KEY, catalog.organization_users_access(C, ORG_1), True),
    (ORG_1_KEY, catalog.is_organization_admin(ORG_1), True),
    (ORG_1_KEY, catalog.is_organization_admin(ORG_2), False),
    (ORG_1_KEY, catalog.applications_access(C, ORG_1), True),
    (ORG_1_KEY, catalog.application_access(U, APP_1), True),
    (ORG_1_KEY, catalog.application_access(R, APP_2), False),
    (ORG_1_KEY, catalog.application_users_access(L, APP_1), True),
    (ORG_1_KEY, catalog.node_access(D, DEV_1), True),
    (ORG_1_KEY, catalog.node_access(R, DEV_2), False),
    (ORG_1_KEY, catalog.gateways_access(C, ORG_1), True),
    (ORG_2_KEY, catalog.gateways_access(C, ORG_2), False),
    (ORG_1_KEY, catalog.gateways_access(L, ORG_1), True),
    (ORG_1_KEY, catalog.gateway_access(U, GW_1), True),
    (ORG_1_KEY, catalog.service_profiles_access(L, ORG_1), True),
    (ORG_1_KEY, catalog.service_profiles_access(C, ORG_1), False),
    (ORG_1_KEY, catalog.service_profile_access(R, SP_1), True),
    (ORG_1_KEY, catalog.device_profiles_access(C, ORG_1, 0), True),
    (ORG_1_KEY, catalog.device_profiles_access(L, ORG_1, 0), True),
    (ORG_1_KEY, catalog.device_profile_access(U, DP_1), True),
    (ORG_2_KEY, catalog.device_profile_access(U, DP_1), False),
    (ORG_1_KEY, catalog.network_servers_access(L, ORG_1), True),
    (ORG_1_KEY, catalog.network_server_access(R, NS_1), True),
    (ORG_1_KEY, catalog.network_server_access(U, NS_1), False),
    (ORG_1_KEY, catalog.organization_network_server_access(R, ORG_1, NS_1), True),
    (ORG_1_KEY, catalog.gateway_profile_access(L), True),
    (ORG_1_KEY, catalog.gateway_profile_access(C), False),
    (ORG_1_KEY, catalog.multicast_groups_access(C, APP_1), True),
    (ORG_1_KEY, catalog.multicast_group_access(D, MG_1), True),
    (ORG_1_KEY, catalog.api_keys_access(C, ORG_1, 0), True),
    (ORG_1_KEY, catalog.api_keys_access(L, 0, APP_1), True),
    (ORG_1_KEY, catalog.api_keys_access(C, ORG_2, 0), False),
    (ORG_1_KEY, catalog.api_key_access(D, APP_1_KEY), True),
    (ORG_1_KEY, catalog.api_key_access(D, ADMIN_KEY), False),
    (ORG_1_KEY, catalog.api_key_access(D, APP_2_KEY), False),
    (ORG_1_KEY, catalog.fuota_deployments_access(C, ORG_1), True),
    (ORG_1_KEY, catalog.fuota_deployments_access(R, 0, DEV_1), True),

    # application keys
    (APP_1_KEY, catalog.application_access(R, APP_1), True),
    (APP_1_KEY, catalog.application_access(R, APP_2), False),
    (APP_1_KEY, catalog.nodes_access(C, APP_1), True),
    (APP_1_KEY, catalog.node_access(R, DEV_1), True),
    (APP_1_KEY, catalog.device_queue_access(C, DEV_1), True),
    (APP_1_KEY, catalog.node_access(R, DEV_2), False),
    (APP_1_KEY, catalog.gateway_access(R, GW_1), False),
    (APP_1_KEY, catalog.organization_access(R, ORG_1), False),
    (APP_1_KEY, catalog.application_users_access(L, APP_1), False),
    (APP_1_KEY, catalog.multicast_groups_access(L, APP_1), False),
    (APP_1_KEY, catalog.device_profile_access(R, DP_1), True),
    (APP_1_KEY, catalog.device_profile_access(U, DP_1), False),
    (APP_1_KEY, catalog.device_profiles_access(L, 0, APP_1), True),
    (APP_1_KEY, catalog.api_keys_access(L, 0, APP_1), False),
    (APP_1_KEY, catalog.gateway_profile_access(R), True),
]


def _id(case):
    key, rule, admit = case
    action = rule.action.value if rule.action else "any"
    return f"{str(key)[-2:]}-{rule.name}-{action}-{'admit' if admit else 'deny'}"


@pytest.mark.parametrize("key_id,rule,admit", MATRIX, ids=[_id(c) for c in MATRIX])
def test_api_key_rule_matrix(validator, as_key, key_id, rule, admit):
    if admit:
        assert validator.validate(as_key(key_id), rule).api_key_id == key_id
    else:
        with pytest.raises(NotAuthorizedError):
            validator.validate(as_key(key_id), rule)
