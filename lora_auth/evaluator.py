"""
Compiles a predicate into one bounded count query and runs it.
"""

from typing import Any, Dict

from lora_auth.database import IdentityStore
from lora_auth.models import SUBJECT_API_KEY, Claims
from lora_auth.predicate import Predicate, render

# Identity-join views. Constant text so the database can reuse plans.
USER_VIEW = """users u
    left join organization_user ou on ou.user_id = u.id
    left join organizations o on o.id = ou.organization_id
    left join applications a on a.organization_id = o.id
    left join devices d on d.application_id = a.id
    left join multicast_group mg on mg.application_id = a.id
    left join fuota_deployment_device fdd on fdd.dev_eui = d.dev_eui
    left join gateways g on g.organization_id = o.id
    left join service_profile sp on sp.organization_id = o.id
    left join device_profile dp on dp.organization_id = o.id
    left join network_server ns on ns.id = sp.network_server_id or ns.id = dp.network_server_id
    left join api_key tk on tk.organization_id = o.id or tk.application_id = a.id"""

API_KEY_VIEW = """api_key ak
    left join organizations o on o.id = ak.organization_id
    left join applications a on a.id = ak.application_id or a.organization_id = ak.organization_id
    left join devices d on d.application_id = a.id
    left join multicast_group mg on mg.application_id = a.id
    left join fuota_deployment_device fdd on fdd.dev_eui = d.dev_eui
    left join gateways g on g.organization_id = ak.organization_id
    left join service_profile sp on sp.organization_id = ak.organization_id
    left join device_profile dp on dp.organization_id = ak.organization_id or dp.organization_id = a.organization_id
    left join network_server ns on ns.id = sp.network_server_id or ns.id = dp.network_server_id
    left join api_key tk on tk.organization_id = ak.organization_id or tk.application_id = a.id"""


def compile_query(predicate: Predicate, subject: str):
    """Return (sql, param_names) for a predicate and subject kind."""
    where, names = render(predicate)
    view = API_KEY_VIEW if subject == SUBJECT_API_KEY else USER_VIEW
    sql = f"select count(*) as count from (select 1 from {view} where {where} limit 1) as count_only"
    return sql, names


def subject_params(claims: Claims) -> Dict[str, Any]:
    if claims.subject == SUBJECT_API_KEY:
        return {"subject_api_key_id": str(claims.api_key_id)}
    return {"subject_username": claims.username, "subject_user_id": claims.user_id}


class PredicateEvaluator:
    def __init__(self, store: IdentityStore):
        self.store = store

    def evaluate(self, predicate: Predicate, claims: Claims, params: Dict[str, Any]) -> bool:
        """True when at least one row of the identity view satisfies the predicate.

        A predicate without clauses never admits and issues no query.
        Store errors propagate as UnavailableError.
        """
        if predicate.never:
            return False

        sql, names = compile_query(predicate, claims.subject)
        values = dict(params)
        values.update(subject_params(claims))
        binds = {name: values[name] for name in names}

        rows = self.store.query(sql, binds)
        return bool(rows) and rows[0]["count"] > 0
