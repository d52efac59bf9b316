"""
Tenancy filter advisor for list endpoints.

A list handler either narrows its business query by the caller's scope
(list_filter) or refuses an unfiltered request from a non-admin
(require_filter).
"""

from typing import Optional

from lora_auth import store as identity
from lora_auth.database import IdentityStore
from lora_auth.errors import DoesNotExistError, NotAuthorizedError
from lora_auth.models import SUBJECT_API_KEY, Claims, ListFilter, TenancyScope

UNFILTERED_MESSAGE = "client must be global admin for unfiltered request"


def scope_from_claims(store: IdentityStore, claims: Claims) -> TenancyScope:
    """Resolve the subject of verified claims into its list scope."""
    try:
        if claims.subject == SUBJECT_API_KEY:
            key = identity.get_api_key(store, claims.api_key_id)
            return TenancyScope(
                is_admin=key.is_admin,
                user_id=None,
                organization_id=key.organization_id,
                application_id=key.application_id,
            )
        if claims.user_id:
            user = identity.get_user(store, claims.user_id)
        else:
            user = identity.get_user_by_email(store, claims.username)
    except DoesNotExistError as e:
        raise NotAuthorizedError() from e

    if not user.is_active:
        raise NotAuthorizedError()
    return TenancyScope(is_admin=user.is_admin, user_id=user.id,
                        organization_id=None, application_id=None)


def require_filter(scope: TenancyScope, organization_id: Optional[int] = 0,
                   application_id: Optional[int] = 0) -> None:
    if not scope.is_admin and not organization_id and not application_id:
        raise NotAuthorizedError(UNFILTERED_MESSAGE)


def list_filter(scope: TenancyScope, organization_id: Optional[int] = 0,
                application_id: Optional[int] = 0) -> ListFilter:
    """Narrowing to apply to a list query for this caller."""
    org = organization_id or None
    app = application_id or None
    if scope.is_admin:
        return ListFilter(organization_id=org, application_id=app)
    if scope.user_id is not None:
        return ListFilter(user_id=scope.user_id, organization_id=org, application_id=app)
    if scope.organization_id is not None:
        return ListFilter(organization_id=scope.organization_id, application_id=app)
    return ListFilter(application_id=scope.application_id)
