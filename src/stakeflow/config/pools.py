"""Stake pool registry and identifier resolution.

A pool may be configured either by a registered name or by its address.
Registered pools also carry presentation-independent metadata that the
orchestrator honours, such as a pinned receipt kind.
"""

from __future__ import annotations

from collections.abc import Iterable

import structlog
from pydantic import BaseModel, ConfigDict, field_validator

from stakeflow.models.pool import ReceiptType, TokenStandard
from stakeflow.utils.units import is_valid_address

log = structlog.get_logger(__name__)


class StakePoolMetadata(BaseModel):
    """Registered stake pool.

    Attributes:
        name: Short name the pool can be configured by.
        stake_pool_address: Pool address (base58).
        receipt_type: Receipt kind pinned for this pool, if any.
        token_standard: Kind of token the pool accepts, if known.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    stake_pool_address: str
    receipt_type: ReceiptType | None = None
    token_standard: TokenStandard | None = None

    @field_validator("stake_pool_address")
    @classmethod
    def validate_address(cls, v: str) -> str:
        """Validate the pool address is a base58 public key."""
        if not is_valid_address(v):
            raise ValueError(f"Invalid stake pool address: {v}")
        return v


def resolve_stake_pool_id(
    identifier: str, metadatas: Iterable[StakePoolMetadata] = ()
) -> str | None:
    """Resolve a pool name or address to a pool address.

    Lookup order: registered name, registered address, then the
    identifier itself if it is a valid address.

    Returns:
        The pool address, or None if the identifier resolves to nothing.
    """
    registry = list(metadatas)
    by_name = next((p for p in registry if p.name == identifier), None)
    if by_name is not None:
        return by_name.stake_pool_address

    by_address = next(
        (p for p in registry if p.stake_pool_address == identifier), None
    )
    if by_address is not None:
        return by_address.stake_pool_address

    if is_valid_address(identifier):
        return identifier

    log.warning("stake_pool_unresolved", identifier=identifier)
    return None


def find_pool_metadata(
    pool_address: str, metadatas: Iterable[StakePoolMetadata] = ()
) -> StakePoolMetadata | None:
    """Return the registered metadata for a pool address, if any."""
    return next(
        (p for p in metadatas if p.stake_pool_address == pool_address), None
    )
