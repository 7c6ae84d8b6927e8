"""Token models for staked and unstaked tokens.

A token is either an UnstakedToken (sitting in the wallet, identified by
its mint) or a StakedToken (held by the pool, identified by its stake
entry). The two variants are distinguished by the ``kind`` field so that
``Token`` can be validated as a tagged union.
"""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field


class TokenAccount(BaseModel):
    """SPL token account holding a wallet's balance of one mint.

    Attributes:
        pubkey: Token account address.
        mint: Mint address of the held token.
        owner: Wallet owning the account.
        amount: Raw balance in natural units (not decimals-adjusted).
        decimals: Decimal precision of the mint.
    """

    model_config = ConfigDict(frozen=True)

    pubkey: str
    mint: str
    owner: str
    amount: int = Field(ge=0)
    decimals: int = Field(default=0, ge=0)


class StakeEntry(BaseModel):
    """On-ledger record of one active stake.

    Attributes:
        pubkey: Stake entry address.
        original_mint: Mint of the staked token.
        last_staker: Wallet that staked the token most recently.
        amount: Staked amount in natural units.
        cooldown_start_seconds: Unix time the cooldown started, if it has.
    """

    model_config = ConfigDict(frozen=True)

    pubkey: str
    original_mint: str
    last_staker: str
    amount: int = Field(default=0, ge=0)
    cooldown_start_seconds: int | None = None


class UnstakedToken(BaseModel):
    """A token in the wallet that may be staked."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["unstaked"] = "unstaked"
    mint: str
    owned_quantity: int = Field(default=1, ge=0)
    token_account: TokenAccount | None = None
    decimals: int | None = Field(default=None, ge=0)
    # Existing entry for this mint in the pool (fungible partial stakes)
    stake_entry: StakeEntry | None = None
    name: str | None = None

    @property
    def key(self) -> str:
        return self.mint

    @property
    def is_fungible(self) -> bool:
        return self.owned_quantity > 1

    @property
    def label(self) -> str:
        return self.name or self.mint


class StakedToken(BaseModel):
    """A token currently staked in the pool."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["staked"] = "staked"
    stake_entry_id: str
    stake_entry: StakeEntry | None = None
    name: str | None = None

    @property
    def key(self) -> str:
        return self.stake_entry_id

    @property
    def label(self) -> str:
        return self.name or self.stake_entry_id


Token = Annotated[UnstakedToken | StakedToken, Field(discriminator="kind")]
