"""Ledger contract exception classes."""


class LedgerError(Exception):
    """Base exception for all ledger contract failures."""

    code = "LEDGER_ERROR"

    def __init__(self, message: str, code: str | None = None) -> None:
        if code is not None:
            self.code = code
        self.message = message
        super().__init__(f"[{self.code}] {message}")


class InvalidProofError(LedgerError):
    """Raised when a proof fails cryptographic verification."""

    code = "INVALID_PROOF"


class InsufficientPaymentError(LedgerError):
    """Raised when a fee or query payment is below what is required."""

    code = "INSUFFICIENT_PAYMENT"


class UnauthorizedCallerError(LedgerError):
    """Raised when a creator-only operation is called by someone else."""

    code = "UNAUTHORIZED"


class PreconditionError(LedgerError):
    """Raised when the ledger state does not allow the operation yet."""

    code = "PRECONDITION_FAILED"


class AgentNotFoundError(PreconditionError):
    """Raised when an agent id is not registered."""

    code = "AGENT_NOT_FOUND"


class QueryNotFoundError(PreconditionError):
    """Raised when a query id does not exist."""

    code = "QUERY_NOT_FOUND"


class AlreadyRegisteredError(PreconditionError):
    """Raised when an agent id is registered twice."""

    code = "ALREADY_REGISTERED"


class QueryAlreadyProcessedError(PreconditionError):
    """Raised when settlement is attempted on a processed query."""

    code = "ALREADY_PROCESSED"


class ReentrancyError(LedgerError):
    """Raised when a guarded operation is re-entered."""

    code = "REENTRANT_CALL"
