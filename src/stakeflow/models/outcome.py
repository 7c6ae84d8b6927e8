"""Batch outcome models and the action result type.

A BatchOutcome holds one result per submitted intent, in submission
order. Callers receive it wrapped in ``Ok`` when every wave reached the
submission service successfully, or in ``Err`` when validation failed or
a wave failed as a whole.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field, computed_field

from stakeflow.models.intent import ActionKind, IntentKind, OperationIntent


class IntentStatus(str, Enum):
    """Per-intent submission status."""

    SUBMITTED = "submitted"
    FAILED = "failed"


class OutcomeStatus(str, Enum):
    """Aggregate status of a batch."""

    SUCCESS = "success"
    PARTIAL_FAILURE = "partial_failure"
    TOTAL_FAILURE = "total_failure"
    EMPTY = "empty"  # Nothing was submitted


class IntentResult(BaseModel):
    """Result of submitting one intent."""

    intent: OperationIntent
    status: IntentStatus
    signature: str | None = None
    reason: str | None = None

    @classmethod
    def submitted(cls, intent: OperationIntent, signature: str) -> IntentResult:
        return cls(intent=intent, status=IntentStatus.SUBMITTED, signature=signature)

    @classmethod
    def failed(cls, intent: OperationIntent, reason: str) -> IntentResult:
        return cls(intent=intent, status=IntentStatus.FAILED, reason=reason)


class WaveError(BaseModel):
    """A wave that the submission service failed as a whole."""

    wave: str
    reason: str


class BatchOutcome(BaseModel):
    """Ordered per-intent results of one batch."""

    results: list[IntentResult] = Field(default_factory=list)
    wave_errors: list[WaveError] = Field(default_factory=list)

    @computed_field
    @property
    def status(self) -> OutcomeStatus:
        """Aggregate the per-intent results."""
        if not self.results:
            return OutcomeStatus.EMPTY
        failed = len(self.failed)
        if failed == 0:
            return OutcomeStatus.SUCCESS
        if failed == len(self.results):
            return OutcomeStatus.TOTAL_FAILURE
        return OutcomeStatus.PARTIAL_FAILURE

    @property
    def submitted(self) -> list[IntentResult]:
        return [r for r in self.results if r.status == IntentStatus.SUBMITTED]

    @property
    def failed(self) -> list[IntentResult]:
        return [r for r in self.results if r.status == IntentStatus.FAILED]

    def signatures(self) -> list[str]:
        """Signatures of submitted intents, in submission order."""
        return [r.signature for r in self.submitted if r.signature]

    def of_kind(self, kind: IntentKind) -> list[IntentResult]:
        return [r for r in self.results if r.intent.kind == kind]


class BuildFailure(BaseModel):
    """A token whose intents could not be built."""

    token_key: str
    error_type: str
    reason: str


class ActionReport(BaseModel):
    """What one action did, from selection to submission."""

    action: ActionKind
    token_count: int
    build_failures: list[BuildFailure] = Field(default_factory=list)
    outcome: BatchOutcome = Field(default_factory=BatchOutcome)
    cooldown_initiated: bool = False


class ValidationFailure(BaseModel):
    """An action rejected before any intent was built."""

    stage: Literal["validation"] = "validation"
    action: ActionKind
    reason: str


class SubmissionFailure(BaseModel):
    """An action whose submission failed for at least one whole wave."""

    stage: Literal["submission"] = "submission"
    action: ActionKind
    reason: str
    report: ActionReport


@dataclass(frozen=True)
class Ok:
    """Successful action; the outcome may still hold per-intent failures."""

    report: ActionReport

    @property
    def is_ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    """Failed action."""

    failure: ValidationFailure | SubmissionFailure

    @property
    def is_ok(self) -> bool:
        return False


ActionResult = Ok | Err
