"""Stake pool configuration models.

The pool is owned by the staking program. These models are read-only
snapshots used by the intent builder; nothing in StakeFlow mutates them.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ReceiptType(str, Enum):
    """What the staker holds while a token is staked."""

    ORIGINAL = "original"  # Original token is locked in the wallet
    RECEIPT = "receipt"  # A derived receipt token is minted


class TokenStandard(str, Enum):
    """Kind of token a pool accepts."""

    NON_FUNGIBLE = "non_fungible"
    FUNGIBLE = "fungible"


class PoolConfig(BaseModel):
    """Staking rules of one stake pool.

    Attributes:
        pool_id: Stake pool address.
        cooldown_seconds: Cooldown before unstaked tokens are withdrawable.
        min_stake_seconds: Minimum time a token must stay staked.
        receipt_type: Receipt kind the pool defaults to, if any.
    """

    model_config = ConfigDict(frozen=True)

    pool_id: str
    cooldown_seconds: int | None = Field(default=None, ge=0)
    min_stake_seconds: int | None = Field(default=None, ge=0)
    receipt_type: ReceiptType | None = None

    @property
    def enforces_cooldown(self) -> bool:
        return bool(self.cooldown_seconds)
