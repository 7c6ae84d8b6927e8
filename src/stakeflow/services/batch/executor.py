"""Batch executor submitting prepared intents in waves."""

from __future__ import annotations

from collections.abc import Sequence

import structlog

from stakeflow.models.intent import IntentKind, PreparedIntent
from stakeflow.models.outcome import BatchOutcome, IntentResult, WaveError
from stakeflow.services.interfaces import (
    LedgerConnection,
    NotificationConfig,
    SigningContext,
    SubmissionService,
)
from stakeflow.utils.units import short

logger = structlog.get_logger(__name__)

RECEIPT_WAVE = "receipts"
MAIN_WAVE = "main"


class BatchExecutor:
    """
    Submits the intents of one action to the submission service.

    Handles the wave ordering:
    - CreateReceipt intents go first, as their own wave, so the entries
      exist before any Stake intent references them
    - Every other intent goes in a single second wave
    - Stake intents whose receipt entry failed are not submitted

    A wave that raises is failed as a whole: each of its intents is
    recorded as failed with the wave's error. No per-intent result is
    guessed from a failed call.
    """

    def __init__(
        self,
        connection: LedgerConnection,
        submission: SubmissionService,
    ) -> None:
        """
        Initialize BatchExecutor.

        Args:
            connection: Ledger connection handed to the submission service
            submission: Service that signs, sends and confirms transactions
        """
        self.connection = connection
        self.submission = submission

    async def submit(
        self,
        intents: Sequence[PreparedIntent],
        signing_context: SigningContext,
        notification_config: NotificationConfig | None = None,
    ) -> BatchOutcome:
        """Submit intents and collect one result per intent.

        Results are in submission order: the receipt wave first, then the
        main wave, each in the order the intents were given.
        """
        outcome = BatchOutcome()
        receipts = [p for p in intents if p.kind == IntentKind.CREATE_RECEIPT]
        rest = [p for p in intents if p.kind != IntentKind.CREATE_RECEIPT]

        failed_receipt_keys: set[str] = set()
        if receipts:
            # The success notification belongs to the main wave only
            ok = await self._submit_wave(
                RECEIPT_WAVE, receipts, signing_context, None, outcome
            )
            if not ok:
                failed_receipt_keys = {p.intent.token_key for p in receipts}

        main: list[PreparedIntent] = []
        skipped: dict[int, IntentResult] = {}
        for index, prepared in enumerate(rest):
            if (
                prepared.kind == IntentKind.STAKE
                and prepared.intent.token_key in failed_receipt_keys
            ):
                skipped[index] = IntentResult.failed(
                    prepared.intent, "Receipt entry was not created"
                )
                logger.info(
                    "stake_skipped_receipt_failed",
                    token=short(prepared.intent.token_key),
                )
            else:
                main.append(prepared)

        main_outcome = BatchOutcome()
        if main:
            await self._submit_wave(
                MAIN_WAVE, main, signing_context, notification_config, main_outcome
            )
        outcome.wave_errors.extend(main_outcome.wave_errors)

        # Put skipped stakes back in their original position
        submitted = iter(main_outcome.results)
        for index in range(len(rest)):
            outcome.results.append(skipped.get(index) or next(submitted))

        logger.info(
            "batch_submitted",
            intents=len(intents),
            submitted=len(outcome.submitted),
            failed=len(outcome.failed),
            status=outcome.status.value,
        )
        return outcome

    async def _submit_wave(
        self,
        wave: str,
        prepared: list[PreparedIntent],
        signing_context: SigningContext,
        notification_config: NotificationConfig | None,
        outcome: BatchOutcome,
    ) -> bool:
        """Submit one wave, recording its results. Returns True on success."""
        log = logger.bind(wave=wave, intents=len(prepared))
        log.info("wave_submitting")
        try:
            signatures = await self.submission.submit_all(
                self.connection,
                signing_context,
                [p.transaction for p in prepared],
                signers=[list(p.signers) for p in prepared],
                notification_config=notification_config,
            )
        except Exception as e:
            error_msg = str(e) or type(e).__name__
            log.warning("wave_failed", error=error_msg)
            outcome.wave_errors.append(WaveError(wave=wave, reason=error_msg))
            outcome.results.extend(
                IntentResult.failed(p.intent, error_msg) for p in prepared
            )
            return False

        if len(signatures) != len(prepared):
            log.warning(
                "wave_signature_count_mismatch",
                expected=len(prepared),
                received=len(signatures),
            )
        for index, p in enumerate(prepared):
            if index < len(signatures) and signatures[index]:
                outcome.results.append(IntentResult.submitted(p.intent, signatures[index]))
            else:
                outcome.results.append(
                    IntentResult.failed(p.intent, "No signature reported")
                )
        log.info("wave_submitted", signatures=len(signatures))
        return True
