"""
Error taxonomy of the authorization core.

Every error a client can see derives from AuthError and carries the RPC
status name and the HTTP status it is reported with. ConfigError is kept
outside that tree: it signals a programming or deployment bug.
"""


class AuthError(Exception):
    """Base class for errors surfaced to API clients."""

    code = "Unknown"
    http_status = 500
    default_message = "unknown error"

    def __init__(self, message: str = ""):
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self)


# ── MalformedRequest ─────────────────────────────────────────────────

class MalformedRequestError(AuthError):
    """A resource identifier or request field could not be parsed."""

    code = "InvalidArgument"
    http_status = 400
    default_message = "invalid argument"


# ── MalformedCredential ──────────────────────────────────────────────

class MalformedCredentialError(AuthError):
    code = "Unauthenticated"
    http_status = 401
    default_message = "invalid credential"


class NoMetadataError(MalformedCredentialError):
    default_message = "no metadata in context"


class NoAuthorizationError(MalformedCredentialError):
    default_message = "no authorization-data in metadata"


class InvalidTokenError(MalformedCredentialError):
    default_message = "invalid token"


class InvalidAlgorithmError(MalformedCredentialError):
    default_message = "invalid algorithm"


class ExpiredTokenError(MalformedCredentialError):
    default_message = "token is expired"


class WrongAudienceError(MalformedCredentialError):
    default_message = "token audience is not valid"


# ── Denied ───────────────────────────────────────────────────────────

class NotAuthorizedError(AuthError):
    """No rule admitted the call.

    Reported as Unauthenticated on purpose: a client cannot tell a missing
    resource from a resource it may not see.
    """

    code = "Unauthenticated"
    http_status = 401
    default_message = "not authorized"


class SubjectMismatchError(AuthError):
    code = "Unauthenticated"
    http_status = 401
    default_message = "subject mismatch"


class InvalidUsernameOrPasswordError(AuthError):
    code = "Unauthenticated"
    http_status = 401
    default_message = "invalid username or password"


# ── Unavailable ──────────────────────────────────────────────────────

class UnavailableError(AuthError):
    """The identity store could not answer. Retryable by the caller."""

    code = "Unavailable"
    http_status = 503
    default_message = "identity store unavailable"


# ── Storage outcomes ─────────────────────────────────────────────────

class DoesNotExistError(AuthError):
    code = "NotFound"
    http_status = 404
    default_message = "object does not exist"


class AlreadyExistsError(AuthError):
    code = "AlreadyExists"
    http_status = 409
    default_message = "object already exists"


# ── ConfigError ──────────────────────────────────────────────────────

class ConfigError(Exception):
    """Static misconfiguration; fatal, never reported to clients."""


class UnsupportedActionError(ConfigError):
    def __init__(self, rule: str, action):
        super().__init__(f"unsupported action {action!r} for rule {rule}")
        self.rule = rule
        self.action = action
