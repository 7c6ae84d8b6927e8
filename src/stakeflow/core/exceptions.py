"""StakeFlow exception hierarchy.

This module defines the base exception class and specialized exceptions
for the error categories of a batch staking action:

- Validation errors abort an action before any intent is built.
- Build errors are raised per token while building intents; the
  orchestrator catches them, reports them and drops the token.
- Submission errors are raised when the submission service fails a wave.
"""


class StakeFlowError(Exception):
    """Base exception for all StakeFlow errors.

    All custom exceptions in StakeFlow should inherit from this class
    to enable consistent error handling and logging.
    """

    pass


class ConfigurationError(StakeFlowError):
    """Raised when configuration is invalid or missing.

    Example:
        raise ConfigurationError("Unknown stake pool: my-pool")
    """

    pass


class ValidationError(StakeFlowError):
    """Raised when an action's preconditions are not met.

    Covers a missing signing context, a pool that is not loaded, or an
    empty selection. Nothing has been built or submitted when this is raised.

    Example:
        raise ValidationError("Wallet not connected")
    """

    pass


class BuildError(StakeFlowError):
    """Raised when the intent(s) for a single token cannot be built.

    Attributes:
        token_key: Identity key of the token (mint or stake entry address).
    """

    def __init__(self, message: str, token_key: str | None = None) -> None:
        super().__init__(message)
        self.token_key = token_key


class MissingAccountError(BuildError):
    """Raised when an unstaked token has no resolvable token account."""

    pass


class MissingStakeEntryError(BuildError):
    """Raised when a staked token has no stake entry."""

    pass


class InvalidAmountError(BuildError):
    """Raised when a fungible token has no usable amount to stake."""

    pass


class AlreadyStakedError(BuildError):
    """Raised when a fungible token already has a nonzero staked balance.

    Fungible stakes must be fully unstaked before the combined amount is
    staked again.
    """

    pass


class SubmissionError(StakeFlowError):
    """Raised when the submission service fails a whole wave.

    Attributes:
        wave: Name of the wave that failed ("receipts" or "main").
    """

    def __init__(self, message: str, wave: str | None = None) -> None:
        super().__init__(message)
        self.wave = wave


class OrchestratorTransitionError(StakeFlowError):
    """Raised on an invalid orchestrator state transition."""

    pass


class ExternalServiceError(StakeFlowError):
    """Raised when an external service call fails.

    Attributes:
        service: Name of the external service that failed.
        status_code: HTTP status code if available, None otherwise.

    Example:
        raise ExternalServiceError(service="solana-rpc", message="Rate limited", status_code=429)
    """

    def __init__(
        self,
        service: str,
        message: str,
        status_code: int | None = None,
    ) -> None:
        self.service = service
        self.status_code = status_code
        super().__init__(f"{service}: {message}")


class CircuitBreakerOpenError(StakeFlowError):
    """Raised when circuit breaker is open.

    Example:
        raise CircuitBreakerOpenError("Circuit is open for Solana RPC")
    """

    pass


class LedgerConnectionError(StakeFlowError):
    """Raised when an RPC read or write against the ledger fails.

    Attributes:
        address: The account or signature involved (if available).
    """

    def __init__(self, message: str, address: str | None = None) -> None:
        super().__init__(message)
        self.address = address
