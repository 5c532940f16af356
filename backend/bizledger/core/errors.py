"""
Error taxonomy shared by the data-access layer and the services.

Services raise these; the HTTP layer maps them to status codes in
``bizledger.main``. Nothing here is retried.
"""


class LedgerError(Exception):
    """Base class for every failure surfaced by the ledger services."""

    status_code = 500

    def __init__(self, detail: str = ""):
        super().__init__(detail)
        self.detail = detail or self.__class__.__name__


class ConnectionFailure(LedgerError):
    """The relational store is unreachable."""

    status_code = 503


class ConstraintViolation(LedgerError):
    """Duplicate unique key, missing required field or a restricted delete."""

    status_code = 409


class DuplicateUsername(ConstraintViolation):
    pass


class NotFound(LedgerError):
    status_code = 404


class AuthenticationFailure(LedgerError):
    """Bad credentials, inactive account or missing/stale token."""

    status_code = 401


class AuthorizationDenied(LedgerError):
    """Authenticated, but the role ranks below what the operation requires."""

    status_code = 403
