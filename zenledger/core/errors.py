"""Error taxonomy shared by the services, the storage backends and the API.

Services raise these; :class:`zenledger.family_ledger.FamilyLedger` turns them
into failed ``ServiceResult`` values, the API turns them into JSON error
responses and the remote backend turns those responses back into exceptions.
"""

from fastapi import status


class LedgerError(Exception):
    """Base class for every recoverable ledger failure."""

    code: str = "LEDGER_ERROR"
    status_code: int = status.HTTP_400_BAD_REQUEST
    default_detail: str = "Ledger operation failed"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class Unauthorized(LedgerError):
    code = "UNAUTHORIZED"
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Not allowed for this role or family"


class InvalidCredentials(LedgerError):
    code = "INVALID_CREDENTIALS"
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Invalid credentials"


class AccountDisabled(LedgerError):
    code = "ACCOUNT_DISABLED"
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Account disabled"


class DuplicateIdentity(LedgerError):
    code = "DUPLICATE_IDENTITY"
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Identity already exists in this family"


class DuplicateRecord(LedgerError):
    code = "DUPLICATE_RECORD"
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Record already exists"


class NotFound(LedgerError):
    code = "NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found"


class ValidationFailed(LedgerError):
    code = "VALIDATION_FAILED"
    status_code = 422
    default_detail = "Validation failed"


class ConnectionFailed(LedgerError):
    code = "CONNECTION_FAILED"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = "Connection failed"


class Expired(LedgerError):
    code = "EXPIRED"
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Session expired, please log in again"


ERRORS_BY_CODE: dict[str, type[LedgerError]] = {
    cls.code: cls
    for cls in (
        Unauthorized,
        InvalidCredentials,
        AccountDisabled,
        DuplicateIdentity,
        DuplicateRecord,
        NotFound,
        ValidationFailed,
        ConnectionFailed,
        Expired,
    )
}


def error_from_code(code: str | None, detail: str | None = None) -> LedgerError:
    """Rebuild a :class:`LedgerError` from its wire ``code``."""
    cls = ERRORS_BY_CODE.get(code or "", LedgerError)
    return cls(detail)
