"""In-memory cached views of ledger data.

Each view wraps an async fetch function and keeps its last result until
invalidated. The orchestrator only ever invalidates and re-fetches views;
it never writes into them.
"""

import asyncio
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from typing import Generic, TypeVar

import structlog

from stakeflow.constants.staking import (
    ALLOWED_TOKENS_VIEW,
    POOL_ENTRIES_VIEW,
    STAKED_TOKENS_VIEW,
)
from stakeflow.models.token import StakedToken, StakeEntry, UnstakedToken
from stakeflow.services.solana.rpc_client import SolanaRPCClient
from stakeflow.utils.units import short

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class AsyncCachedView(Generic[T]):
    """Lazily fetched, explicitly invalidated view."""

    def __init__(self, name: str, fetch: Callable[[], Awaitable[T]]) -> None:
        """Initialize view.

        Args:
            name: View name used in logs
            fetch: Coroutine function producing fresh data
        """
        self.name = name
        self._fetch = fetch
        self._data: T | None = None
        self._fetched_at: datetime | None = None
        self._lock = asyncio.Lock()
        self._fetches = 0

    @property
    def data(self) -> T | None:
        """Last fetched data, None when invalidated or never fetched."""
        return self._data

    @property
    def fetched_at(self) -> datetime | None:
        return self._fetched_at

    @property
    def is_loaded(self) -> bool:
        return self._fetched_at is not None

    async def get(self) -> T:
        """Return cached data, fetching it first if needed."""
        async with self._lock:
            if self._fetched_at is None:
                await self._load()
            return self._data  # type: ignore[return-value]

    async def invalidate(self) -> None:
        """Drop cached data."""
        async with self._lock:
            self._data = None
            self._fetched_at = None
        logger.debug("view_invalidated", view=self.name)

    async def refetch(self) -> T:
        """Fetch fresh data regardless of the cache."""
        async with self._lock:
            await self._load()
            return self._data  # type: ignore[return-value]

    def get_stats(self) -> dict:
        """Get view statistics."""
        return {
            "name": self.name,
            "loaded": self.is_loaded,
            "fetches": self._fetches,
            "fetched_at": self._fetched_at.isoformat() if self._fetched_at else None,
        }

    async def _load(self) -> None:
        self._data = await self._fetch()
        self._fetched_at = datetime.now(UTC)
        self._fetches += 1
        logger.debug("view_fetched", view=self.name, fetches=self._fetches)


def build_views(
    allowed_tokens: Callable[[], Awaitable[list[UnstakedToken]]],
    staked_tokens: Callable[[], Awaitable[list[StakedToken]]],
    pool_entries: Callable[[], Awaitable[list[StakeEntry]]],
) -> dict[str, AsyncCachedView]:
    """Build the three views refreshed after every batch."""
    return {
        ALLOWED_TOKENS_VIEW: AsyncCachedView(ALLOWED_TOKENS_VIEW, allowed_tokens),
        STAKED_TOKENS_VIEW: AsyncCachedView(STAKED_TOKENS_VIEW, staked_tokens),
        POOL_ENTRIES_VIEW: AsyncCachedView(POOL_ENTRIES_VIEW, pool_entries),
    }


def wallet_tokens_loader(
    client: SolanaRPCClient,
    owner: str,
    allowed_mints: set[str] | None = None,
) -> Callable[[], Awaitable[list[UnstakedToken]]]:
    """Fetch function listing the wallet's stakeable tokens.

    Args:
        client: RPC client
        owner: Wallet address
        allowed_mints: Restrict to these mints when given

    Returns:
        Coroutine function for the allowed-tokens view.
    """

    async def load() -> list[UnstakedToken]:
        accounts = await client.get_token_accounts_by_owner(owner)
        tokens = [
            UnstakedToken(
                mint=account.mint,
                owned_quantity=account.amount,
                token_account=account,
                decimals=account.decimals,
            )
            for account in accounts
            if account.amount > 0
            and (allowed_mints is None or account.mint in allowed_mints)
        ]
        logger.debug("wallet_tokens_loaded", owner=short(owner), tokens=len(tokens))
        return tokens

    return load
