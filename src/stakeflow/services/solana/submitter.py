"""Submission service over Solana RPC.

Signs every transaction with the connected wallet, sends them, and waits
until each signature is confirmed. The service owns the user-facing
notification for the call: one success message, or one error message
before the failure is raised to the caller.
"""

from collections.abc import Sequence
from typing import Any

import structlog
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from stakeflow.constants.staking import (
    CONFIRMATION_POLL_MAX_SECONDS,
    CONFIRMATION_POLL_MIN_SECONDS,
)
from stakeflow.core.exceptions import SubmissionError
from stakeflow.services.interfaces import (
    LedgerConnection,
    NotificationConfig,
    NotificationSink,
    SigningContext,
    UnsignedTransaction,
)
from stakeflow.services.notifications import NotificationKind
from stakeflow.utils.units import short

logger = structlog.get_logger(__name__)

CONFIRMED_LEVELS = frozenset({"confirmed", "finalized"})


class _NotYetConfirmed(Exception):
    """Some signatures have not reached the confirmed level."""


class RpcSubmissionService:
    """Signs, sends and confirms transactions through a ledger connection."""

    def __init__(
        self,
        notifier: NotificationSink,
        confirmation_max_attempts: int = 30,
    ) -> None:
        """
        Initialize RpcSubmissionService.

        Args:
            notifier: Sink for the success or failure notification
            confirmation_max_attempts: Status polls before giving up
        """
        self.notifier = notifier
        self.confirmation_max_attempts = confirmation_max_attempts

    async def submit_all(
        self,
        connection: LedgerConnection,
        signing_context: SigningContext,
        transactions: Sequence[UnsignedTransaction],
        signers: Sequence[Sequence[Any]] | None = None,
        notification_config: NotificationConfig | None = None,
    ) -> list[str]:
        """Sign, send and confirm every transaction.

        Returns:
            Signatures, in input order.

        Raises:
            SubmissionError: If signing, sending or confirmation fails.
        """
        if not transactions:
            return []
        signers = signers or [[] for _ in transactions]
        log = logger.bind(transactions=len(transactions))

        try:
            signed = await signing_context.sign_transactions(transactions, signers)
            log.info("transactions_signed")

            signatures = []
            for raw in signed:
                signatures.append(await connection.send_transaction(raw))
            log.info("transactions_sent", signatures=[short(s) for s in signatures])

            await self._wait_for_confirmation(connection, signatures)
        except Exception as e:
            error_msg = str(e) or type(e).__name__
            log.warning("submission_failed", error=error_msg)
            self.notifier.notify(
                "Failed to submit transactions",
                NotificationKind.ERROR,
                description=error_msg,
            )
            if isinstance(e, SubmissionError):
                raise
            raise SubmissionError(error_msg) from e

        log.info("transactions_confirmed")
        if notification_config is not None:
            self.notifier.notify(
                notification_config.message,
                NotificationKind.SUCCESS,
                description=notification_config.description,
            )
        return signatures

    async def _wait_for_confirmation(
        self, connection: LedgerConnection, signatures: list[str]
    ) -> None:
        """Poll signature statuses until every one is confirmed.

        Raises:
            SubmissionError: If a transaction failed on chain or polling
                ran out of attempts.
        """
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.confirmation_max_attempts),
                wait=wait_exponential(
                    multiplier=CONFIRMATION_POLL_MIN_SECONDS,
                    min=CONFIRMATION_POLL_MIN_SECONDS,
                    max=CONFIRMATION_POLL_MAX_SECONDS,
                ),
                retry=retry_if_exception_type(_NotYetConfirmed),
                reraise=True,
            ):
                with attempt:
                    statuses = await connection.get_signature_statuses(signatures)
                    self._check_statuses(signatures, statuses)
        except _NotYetConfirmed as e:
            raise SubmissionError(
                f"Transactions not confirmed after "
                f"{self.confirmation_max_attempts} attempts: {e}"
            ) from e

    @staticmethod
    def _check_statuses(
        signatures: list[str], statuses: list[dict[str, Any] | None]
    ) -> None:
        pending = []
        for signature, status in zip(signatures, statuses):
            if status is None:
                pending.append(signature)
                continue
            if status.get("err"):
                raise SubmissionError(
                    f"Transaction {signature} failed: {status['err']}"
                )
            if status.get("confirmationStatus") not in CONFIRMED_LEVELS:
                pending.append(signature)
        if len(statuses) < len(signatures):
            pending.extend(signatures[len(statuses):])
        if pending:
            raise _NotYetConfirmed(", ".join(short(s) for s in pending))
