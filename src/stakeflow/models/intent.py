"""Operation intents.

An intent is an unsigned, not yet submitted description of one ledger
operation. Intents are built fresh for every action and never persisted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict

from stakeflow.models.pool import ReceiptType


class ActionKind(str, Enum):
    """User action driving a batch."""

    STAKE = "stake"
    UNSTAKE = "unstake"
    CLAIM_REWARDS = "claim_rewards"


class IntentKind(str, Enum):
    """Kind of ledger operation."""

    CREATE_RECEIPT = "create_receipt"
    STAKE = "stake"
    UNSTAKE = "unstake"
    CLAIM_REWARDS = "claim_rewards"


class OperationIntent(BaseModel):
    """Description of one ledger operation for one token.

    Attributes:
        kind: Operation to perform.
        pool_id: Stake pool address.
        token_key: Identity key of the token the intent was built for.
        mint: Original mint address (stake, receipt, unstake).
        stake_entry_id: Stake entry address (claim).
        amount: Amount in natural units, None for a single non-fungible unit.
        receipt_type: Receipt kind forwarded to the program, if any.
    """

    model_config = ConfigDict(frozen=True)

    kind: IntentKind
    pool_id: str
    token_key: str
    mint: str | None = None
    stake_entry_id: str | None = None
    amount: int | None = None
    receipt_type: ReceiptType | None = None


@dataclass(frozen=True)
class PreparedIntent:
    """Intent paired with the unsigned transaction that carries it out."""

    intent: OperationIntent
    transaction: Any
    signers: tuple[Any, ...] = field(default_factory=tuple)

    @property
    def kind(self) -> IntentKind:
        return self.intent.kind
