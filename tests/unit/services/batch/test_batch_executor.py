"""Unit tests for BatchExecutor."""

import pytest

from stakeflow.models.intent import IntentKind, OperationIntent, PreparedIntent
from stakeflow.models.outcome import IntentStatus, OutcomeStatus
from stakeflow.services.interfaces import NotificationConfig

from conftest import POOL_ID, FakeTransaction


def prepared(kind: IntentKind, key: str, signer=None) -> PreparedIntent:
    return PreparedIntent(
        intent=OperationIntent(kind=kind, pool_id=POOL_ID, token_key=key, mint=key),
        transaction=FakeTransaction(f"{kind.value}:{key}"),
        signers=(signer,) if signer else (),
    )


CONFIG = NotificationConfig(message="Successfully staked")


class TestWaves:
    """Wave ordering."""

    @pytest.mark.asyncio
    async def test_single_wave_without_receipts(self, executor, submission, wallet):
        intents = [
            prepared(IntentKind.UNSTAKE, "A"),
            prepared(IntentKind.UNSTAKE, "B"),
        ]

        outcome = await executor.submit(intents, wallet, CONFIG)

        assert len(submission.calls) == 1
        assert submission.calls[0]["labels"] == ["unstake:A", "unstake:B"]
        assert submission.calls[0]["notification_config"] == CONFIG
        assert outcome.status == OutcomeStatus.SUCCESS
        assert outcome.signatures() == ["sig:unstake:A", "sig:unstake:B"]

    @pytest.mark.asyncio
    async def test_receipts_submitted_first(self, executor, submission, wallet):
        intents = [
            prepared(IntentKind.CREATE_RECEIPT, "A", signer="kp:A"),
            prepared(IntentKind.STAKE, "A"),
            prepared(IntentKind.STAKE, "B"),
            prepared(IntentKind.CREATE_RECEIPT, "C", signer="kp:C"),
            prepared(IntentKind.STAKE, "C"),
        ]

        outcome = await executor.submit(intents, wallet, CONFIG)

        assert [c["labels"] for c in submission.calls] == [
            ["create_receipt:A", "create_receipt:C"],
            ["stake:A", "stake:B", "stake:C"],
        ]
        assert submission.calls[0]["signers"] == [["kp:A"], ["kp:C"]]
        # Only the main wave carries the success message
        assert submission.calls[0]["notification_config"] is None
        assert submission.calls[1]["notification_config"] == CONFIG
        assert [r.intent.kind for r in outcome.results] == [
            IntentKind.CREATE_RECEIPT,
            IntentKind.CREATE_RECEIPT,
            IntentKind.STAKE,
            IntentKind.STAKE,
            IntentKind.STAKE,
        ]

    @pytest.mark.asyncio
    async def test_empty_batch(self, executor, submission, wallet):
        outcome = await executor.submit([], wallet)

        assert submission.calls == []
        assert outcome.status == OutcomeStatus.EMPTY


class TestWaveFailures:
    """A failing submission fails its whole wave."""

    @pytest.mark.asyncio
    async def test_main_wave_failure(self, executor, submission, wallet):
        submission.fail_calls = {0}
        intents = [prepared(IntentKind.CLAIM_REWARDS, "A"), prepared(IntentKind.CLAIM_REWARDS, "B")]

        outcome = await executor.submit(intents, wallet)

        assert outcome.status == OutcomeStatus.TOTAL_FAILURE
        assert [r.reason for r in outcome.results] == ["User rejected the request"] * 2
        assert [w.wave for w in outcome.wave_errors] == ["main"]

    @pytest.mark.asyncio
    async def test_receipt_failure_skips_dependent_stakes(self, executor, submission, wallet):
        submission.fail_calls = {0}
        intents = [
            prepared(IntentKind.CREATE_RECEIPT, "A"),
            prepared(IntentKind.STAKE, "A"),
            prepared(IntentKind.STAKE, "B"),
        ]

        outcome = await executor.submit(intents, wallet)

        assert submission.calls[1]["labels"] == ["stake:B"]
        statuses = [(r.intent.kind, r.intent.token_key, r.status) for r in outcome.results]
        assert statuses == [
            (IntentKind.CREATE_RECEIPT, "A", IntentStatus.FAILED),
            (IntentKind.STAKE, "A", IntentStatus.FAILED),
            (IntentKind.STAKE, "B", IntentStatus.SUBMITTED),
        ]
        assert outcome.results[1].reason == "Receipt entry was not created"
        assert outcome.status == OutcomeStatus.PARTIAL_FAILURE
        assert [w.wave for w in outcome.wave_errors] == ["receipts"]

    @pytest.mark.asyncio
    async def test_all_stakes_skipped_means_no_main_wave(self, executor, submission, wallet):
        submission.fail_calls = {0}
        intents = [prepared(IntentKind.CREATE_RECEIPT, "A"), prepared(IntentKind.STAKE, "A")]

        outcome = await executor.submit(intents, wallet)

        assert len(submission.calls) == 1
        assert outcome.status == OutcomeStatus.TOTAL_FAILURE

    @pytest.mark.asyncio
    async def test_missing_signature_marks_intent_failed(self, executor, submission, wallet):
        async def short_submit(*args, **kwargs):
            return ["sig:first"]

        submission.submit_all = short_submit
        intents = [prepared(IntentKind.UNSTAKE, "A"), prepared(IntentKind.UNSTAKE, "B")]

        outcome = await executor.submit(intents, wallet)

        assert [r.status for r in outcome.results] == [
            IntentStatus.SUBMITTED,
            IntentStatus.FAILED,
        ]
        assert outcome.wave_errors == []
