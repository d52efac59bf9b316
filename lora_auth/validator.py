"""
Validator: the authorization surface business handlers call.

validate() parses the request credential, then tries each rule in order
against the identity store. The first admitting rule wins; later rules
are not evaluated.
"""

from typing import Any

from lora_auth import store as identity
from lora_auth.catalog import Rule, RuleCatalog
from lora_auth.config import DISABLE_ASSIGN_EXISTING_USERS, JWT_ALGORITHM
from lora_auth.credentials import CredentialParser
from lora_auth.database import IdentityStore
from lora_auth.errors import DoesNotExistError, NotAuthorizedError, SubjectMismatchError
from lora_auth.evaluator import PredicateEvaluator
from lora_auth.models import SUBJECT_API_KEY, SUBJECT_USER, APIKeyRecord, Claims, TenancyScope, UserRecord
from lora_auth.tenancy import scope_from_claims


class Validator:
    def __init__(self, store, secret: str, algorithm: str = JWT_ALGORITHM,
                 disable_assign_existing_users: bool = DISABLE_ASSIGN_EXISTING_USERS):
        if not isinstance(store, IdentityStore):
            store = IdentityStore(store)
        self.store = store
        self.secret = secret
        self.parser = CredentialParser(secret, algorithm)
        self.evaluator = PredicateEvaluator(store)
        self.catalog = RuleCatalog(disable_assign_existing_users)

    @property
    def disable_assign_existing_users(self) -> bool:
        return self.catalog.disable_assign_existing_users

    def set_disable_assign_existing_users(self, value: bool) -> None:
        """Swap in a catalog built for the new policy; applies to the next call."""
        self.catalog = RuleCatalog(value)

    def claims(self, metadata: Any) -> Claims:
        return self.parser.parse(metadata)

    def validate(self, metadata: Any, *rules: Rule) -> Claims:
        """Admit the call if any rule admits it; returns the verified claims.

        Raises a MalformedCredentialError subclass for a bad credential,
        NotAuthorizedError when no rule admits and UnavailableError when the
        identity store fails.
        """
        claims = self.parser.parse(metadata)
        catalog = self.catalog
        for rule in rules:
            entry = catalog.lookup(rule)
            if self.evaluator.evaluate(entry.for_subject(claims.subject), claims, rule.params):
                return claims
        raise NotAuthorizedError()

    def subject(self, metadata: Any) -> str:
        return self.parser.parse(metadata).subject

    def user(self, metadata: Any) -> UserRecord:
        claims = self.parser.parse(metadata)
        if claims.subject != SUBJECT_USER:
            raise SubjectMismatchError(f"subject must be user, got {claims.subject}")
        try:
            if claims.user_id:
                return identity.get_user(self.store, claims.user_id)
            return identity.get_user_by_email(self.store, claims.username)
        except DoesNotExistError as e:
            raise NotAuthorizedError() from e

    def api_key(self, metadata: Any) -> APIKeyRecord:
        claims = self.parser.parse(metadata)
        if claims.subject != SUBJECT_API_KEY:
            raise SubjectMismatchError(f"subject must be api_key, got {claims.subject}")
        try:
            return identity.get_api_key(self.store, claims.api_key_id)
        except DoesNotExistError as e:
            raise NotAuthorizedError() from e

    def scope(self, metadata: Any) -> TenancyScope:
        return scope_from_claims(self.store, self.parser.parse(metadata))
