class DebitGateError(Exception):
    """Base class for every rejection raised by the gate."""
    code = "DEBIT_GATE_ERROR"
    status_code = 400


class Unauthorized(DebitGateError):
    """Raised when a caller or record fails a check anywhere in the authority chain."""
    code = "UNAUTHORIZED"
    status_code = 403


class AlreadyInitialized(DebitGateError):
    """Raised when the platform authority singleton already exists."""
    code = "ALREADY_INITIALIZED"
    status_code = 409


class InvalidRecordReference(DebitGateError):
    """Raised when a supplied locator does not match the one derived from its scope."""
    code = "INVALID_RECORD_REFERENCE"
    status_code = 400


class RecordNotFound(InvalidRecordReference):
    """Raised when a locator is valid but nothing is stored under it."""
    code = "RECORD_NOT_FOUND"
    status_code = 404


class MintMismatch(DebitGateError):
    """Raised when source and destination accounts hold different assets."""
    code = "MINT_MISMATCH"
    status_code = 422


class QuotaError(DebitGateError):
    status_code = 422


class ExceedsPerTransferLimit(QuotaError):
    code = "EXCEEDS_PER_TRANSFER_LIMIT"


class ExceedsPeriodLimit(QuotaError):
    code = "EXCEEDS_PERIOD_LIMIT"


class ExceedsMaxPerOrdinal(QuotaError):
    code = "EXCEEDS_MAX_PER_ORDINAL"


class TransferError(DebitGateError):
    """Raised by the value-transfer primitive when it refuses to move funds."""
    code = "TRANSFER_FAILED"
    status_code = 422


class AccountNotFound(TransferError):
    code = "ACCOUNT_NOT_FOUND"
    status_code = 404


class InsufficientFunds(TransferError):
    code = "INSUFFICIENT_FUNDS"


class InsufficientAllowance(TransferError):
    code = "INSUFFICIENT_ALLOWANCE"
