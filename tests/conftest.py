"""Shared pytest fixtures for StakeFlow tests.

This module provides fixtures for:
- Token factories (non-fungible, fungible, staked)
- Fake collaborators (program client, wallet, submission service, views)
- A recording notification sink

Usage:
    @pytest.mark.asyncio
    async def test_something(orchestrator, nft_factory):
        orchestrator.select(nft_factory("MintA"))
        result = await orchestrator.stake()
"""

import os
from collections.abc import Callable, Generator, Sequence
from dataclasses import dataclass, field
from typing import Any

import pytest
import pytest_asyncio

from stakeflow.models.pool import PoolConfig, ReceiptType
from stakeflow.models.token import StakedToken, StakeEntry, TokenAccount, UnstakedToken
from stakeflow.services.batch.executor import BatchExecutor
from stakeflow.services.intents.builder import IntentBuilder
from stakeflow.services.notifications import RecordingNotificationSink
from stakeflow.services.orchestrator import StakingOrchestrator
from stakeflow.services.refresh.scheduler import RefreshScheduler
from stakeflow.services.selection.store import SelectionStore

WALLET = "9WzDXwBbmkg8ZTbNMqUxvQRAyrZzDsGYdLVL9zYtAWWM"
OTHER_WALLET = "7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU"
POOL_ID = "3EyzFXhsVXApzPHhz9QcBaQryGicQxzeN5YZ43KRVDba"

# =============================================================================
# Environment Configuration
# =============================================================================


@pytest.fixture(scope="session", autouse=True)
def setup_test_environment() -> Generator[None, None, None]:
    """Keep tests independent from any local .env settings."""
    original_env = os.environ.copy()
    os.environ.setdefault("SOLANA_RPC_URL", "https://rpc.test.invalid")
    os.environ.setdefault("STAKE_POOL_ID", POOL_ID)

    yield

    os.environ.clear()
    os.environ.update(original_env)


# =============================================================================
# Fake collaborators
# =============================================================================


@dataclass
class FakeTransaction:
    """Unsigned transaction stand-in."""

    label: str
    instructions: list[str] = field(default_factory=lambda: ["ix"])


class FakeProgramClient:
    """Staking program client recording every build call."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.fail_mints: dict[str, Exception] = {}
        self.existing_receipts: set[str] = set()

    def _check(self, mint: str | None) -> None:
        if mint in self.fail_mints:
            raise self.fail_mints[mint]

    async def build_create_receipt_intent(self, signing_context, *, pool_id, original_mint):
        self.calls.append(("create_receipt", {"pool_id": pool_id, "original_mint": original_mint}))
        self._check(original_mint)
        if original_mint in self.existing_receipts:
            return FakeTransaction(f"receipt:{original_mint}", instructions=[]), None
        return FakeTransaction(f"receipt:{original_mint}"), f"keypair:{original_mint}"

    async def build_stake_intent(
        self,
        signing_context,
        *,
        pool_id,
        original_mint,
        user_token_account,
        amount,
        receipt_type,
    ):
        self.calls.append(
            (
                "stake",
                {
                    "pool_id": pool_id,
                    "original_mint": original_mint,
                    "user_token_account": user_token_account,
                    "amount": amount,
                    "receipt_type": receipt_type,
                },
            )
        )
        self._check(original_mint)
        return FakeTransaction(f"stake:{original_mint}")

    async def build_unstake_intent(self, signing_context, *, pool_id, original_mint):
        self.calls.append(("unstake", {"pool_id": pool_id, "original_mint": original_mint}))
        self._check(original_mint)
        return FakeTransaction(f"unstake:{original_mint}")

    async def build_claim_intent(self, signing_context, *, pool_id, stake_entry_id):
        self.calls.append(("claim", {"pool_id": pool_id, "stake_entry_id": stake_entry_id}))
        self._check(stake_entry_id)
        return FakeTransaction(f"claim:{stake_entry_id}")


class FakeSigningContext:
    """Connected wallet that 'signs' by tagging transaction labels."""

    def __init__(self, public_key: str = WALLET, connected: bool = True) -> None:
        self._public_key = public_key
        self._connected = connected
        self.signed: list[list[Any]] = []

    @property
    def public_key(self) -> str:
        return self._public_key

    @property
    def connected(self) -> bool:
        return self._connected

    async def sign_transactions(self, transactions, signers) -> list[bytes]:
        self.signed.append(list(signers))
        return [f"signed:{tx.label}".encode() for tx in transactions]


class FakeSubmissionService:
    """Submission service recording each call; fails calls listed in ``fail_calls``."""

    def __init__(self) -> None:
        self.calls: list[dict[str, Any]] = []
        self.fail_calls: set[int] = set()

    async def submit_all(
        self,
        connection,
        signing_context,
        transactions: Sequence[FakeTransaction],
        signers=None,
        notification_config=None,
    ) -> list[str]:
        index = len(self.calls)
        self.calls.append(
            {
                "labels": [tx.label for tx in transactions],
                "signers": signers,
                "notification_config": notification_config,
            }
        )
        if index in self.fail_calls:
            raise RuntimeError("User rejected the request")
        return [f"sig:{tx.label}" for tx in transactions]


class FakeView:
    """Cached view counting invalidations and re-fetches."""

    def __init__(self, data: Any = None) -> None:
        self.data = data
        self.invalidations = 0
        self.refetches = 0

    async def invalidate(self) -> None:
        self.invalidations += 1

    async def refetch(self) -> Any:
        self.refetches += 1
        return self.data


# =============================================================================
# Token factories
# =============================================================================


@pytest.fixture
def nft_factory() -> Callable[..., UnstakedToken]:
    """Create a non-fungible unstaked token."""

    def make(mint: str = "NftMint1", **kwargs: Any) -> UnstakedToken:
        return UnstakedToken(
            mint=mint,
            owned_quantity=1,
            token_account=TokenAccount(
                pubkey=f"acct:{mint}", mint=mint, owner=WALLET, amount=1
            ),
            decimals=0,
            **kwargs,
        )

    return make


@pytest.fixture
def fungible_factory() -> Callable[..., UnstakedToken]:
    """Create a fungible unstaked token."""

    def make(
        mint: str = "FungMint1",
        owned_quantity: int = 5,
        decimals: int | None = 6,
        **kwargs: Any,
    ) -> UnstakedToken:
        return UnstakedToken(
            mint=mint,
            owned_quantity=owned_quantity,
            token_account=TokenAccount(
                pubkey=f"acct:{mint}",
                mint=mint,
                owner=WALLET,
                amount=owned_quantity,
                decimals=decimals or 0,
            ),
            decimals=decimals,
            **kwargs,
        )

    return make


@pytest.fixture
def staked_factory() -> Callable[..., StakedToken]:
    """Create a staked token with a stake entry."""

    def make(
        entry_id: str = "Entry1",
        mint: str | None = None,
        staker: str = WALLET,
        cooldown_start_seconds: int | None = None,
        amount: int = 1,
        with_entry: bool = True,
    ) -> StakedToken:
        entry = StakeEntry(
            pubkey=entry_id,
            original_mint=mint or f"mint:{entry_id}",
            last_staker=staker,
            amount=amount,
            cooldown_start_seconds=cooldown_start_seconds,
        )
        return StakedToken(
            stake_entry_id=entry_id,
            stake_entry=entry if with_entry else None,
            name=f"Token {entry_id}",
        )

    return make


# =============================================================================
# Collaborator fixtures
# =============================================================================


@pytest.fixture
def notifier() -> RecordingNotificationSink:
    return RecordingNotificationSink()


@pytest.fixture
def program() -> FakeProgramClient:
    return FakeProgramClient()


@pytest.fixture
def wallet() -> FakeSigningContext:
    return FakeSigningContext()


@pytest.fixture
def submission() -> FakeSubmissionService:
    return FakeSubmissionService()


@pytest.fixture
def pool() -> PoolConfig:
    return PoolConfig(pool_id=POOL_ID)


@pytest.fixture
def views() -> dict[str, FakeView]:
    return {
        "allowed_tokens": FakeView([]),
        "staked_tokens": FakeView([]),
        "pool_entries": FakeView([]),
    }


@pytest.fixture
def builder(program, notifier) -> IntentBuilder:
    return IntentBuilder(program, notifier)


@pytest.fixture
def executor(submission) -> BatchExecutor:
    return BatchExecutor(connection=object(), submission=submission)


@pytest_asyncio.fixture
async def refresher(views):
    scheduler = RefreshScheduler(views, delay_seconds=0.01)
    yield scheduler
    await scheduler.aclose()


@pytest.fixture
def orchestrator(
    builder, executor, refresher, notifier, views, wallet, pool
) -> StakingOrchestrator:
    """Orchestrator with a connected wallet and a loaded pool."""
    orch = StakingOrchestrator(
        selection=SelectionStore(notifier),
        builder=builder,
        executor=executor,
        refresher=refresher,
        notifier=notifier,
        views=views,
        default_receipt_type=ReceiptType.ORIGINAL,
    )
    orch.connect(wallet)
    orch.load_pool(pool)
    return orch
