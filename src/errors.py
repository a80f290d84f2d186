from typing import Optional


class PaymentsEngineError(Exception):
    """Base class for every error raised by the payments engine."""


class ConfigurationError(PaymentsEngineError):
    """Bad command line or input path. Raised before any record is processed."""


class MissingFileArgument(ConfigurationError):
    def __init__(self):
        super().__init__("File argument is missing")


class InvalidFileFormat(ConfigurationError):
    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Invalid file format: {path}")


class TooManyArguments(ConfigurationError):
    def __init__(self):
        super().__init__("Too many arguments provided")


class WrongArgument(ConfigurationError):
    def __init__(self, argument: str):
        self.argument = argument
        super().__init__(f"Wrong argument provided: {argument}")


class InputFileNotFound(ConfigurationError):
    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Input file not found: {path}")


class RecordParseError(PaymentsEngineError):
    """A CSV row that cannot be turned into a transaction record."""

    def __init__(self, row, reason: str):
        self.row = row
        self.reason = reason
        super().__init__(f"Failed to parse row {row}: {reason}")


class TransactionError(PaymentsEngineError):
    """
    Record-level hard error. Aborts only the offending record, unless the
    engine runs in batch mode.
    """

    message = "Transaction failed"

    def __init__(self, transaction=None):
        self.transaction = transaction
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.transaction is None:
            return self.message
        return f"{self.message}: {self.transaction}"


class InvalidAmount(TransactionError):
    message = "Invalid amount for transaction"


class InsufficientFunds(TransactionError):
    message = "Not enough funds for transaction"


class AccountLocked(TransactionError):
    message = "Account is locked"


class DuplicateRecord(TransactionError):
    message = "Duplicate transaction record"


class DisputeAlreadyExists(TransactionError):
    message = "Dispute already exists for this transaction"


class BatchAbortedError(PaymentsEngineError):
    """Batch mode run halted by the first hard error."""

    def __init__(self, client_id: Optional[int], error: Exception):
        self.client_id = client_id
        self.error = error
        if client_id is None:
            super().__init__(f"Batch processing aborted: {error}")
        else:
            super().__init__(f"Batch processing aborted for client {client_id}: {error}")
