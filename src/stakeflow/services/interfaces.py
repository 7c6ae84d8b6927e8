"""Collaborators consumed by the orchestration core.

These are structural interfaces. Wallet adapters, program clients and
UI caches satisfy them without inheriting from anything here.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel

from stakeflow.models.pool import ReceiptType
from stakeflow.services.notifications import NotificationKind


class NotificationConfig(BaseModel):
    """Message the submission service shows once a batch succeeds."""

    message: str
    description: str | None = None


@runtime_checkable
class UnsignedTransaction(Protocol):
    """Transaction built by the staking program client."""

    instructions: Sequence[Any]


@runtime_checkable
class SigningContext(Protocol):
    """Connected wallet able to sign transactions."""

    @property
    def public_key(self) -> str | None: ...

    @property
    def connected(self) -> bool: ...

    async def sign_transactions(
        self,
        transactions: Sequence[Any],
        signers: Sequence[Sequence[Any]],
    ) -> list[bytes]:
        """Sign every transaction, adding its extra signers.

        Returns:
            Serialized signed transactions, in input order.
        """
        ...


class LedgerConnection(Protocol):
    """Read and write access to the ledger."""

    async def get_account_info(self, address: str) -> dict[str, Any] | None: ...

    async def send_transaction(self, raw: bytes) -> str: ...

    async def get_signature_statuses(
        self, signatures: Sequence[str]
    ) -> list[dict[str, Any] | None]: ...


class StakingProgramClient(Protocol):
    """Builder of unsigned staking program transactions."""

    async def build_create_receipt_intent(
        self,
        signing_context: SigningContext,
        *,
        pool_id: str,
        original_mint: str,
    ) -> tuple[UnsignedTransaction, Any | None]:
        """Return the entry creation transaction and its ephemeral signer."""
        ...

    async def build_stake_intent(
        self,
        signing_context: SigningContext,
        *,
        pool_id: str,
        original_mint: str,
        user_token_account: str,
        amount: int | None,
        receipt_type: ReceiptType | None,
    ) -> UnsignedTransaction: ...

    async def build_unstake_intent(
        self,
        signing_context: SigningContext,
        *,
        pool_id: str,
        original_mint: str,
    ) -> UnsignedTransaction: ...

    async def build_claim_intent(
        self,
        signing_context: SigningContext,
        *,
        pool_id: str,
        stake_entry_id: str,
    ) -> UnsignedTransaction: ...


class SubmissionService(Protocol):
    """Signs, sends and confirms a list of transactions as one call."""

    async def submit_all(
        self,
        connection: LedgerConnection,
        signing_context: SigningContext,
        transactions: Sequence[UnsignedTransaction],
        signers: Sequence[Sequence[Any]] | None = None,
        notification_config: NotificationConfig | None = None,
    ) -> list[str]:
        """Submit every transaction.

        Returns:
            One signature per transaction, in input order.

        Raises:
            Exception: Any failure fails the whole call.
        """
        ...


class NotificationSink(Protocol):
    """Fire-and-forget user notifications."""

    def notify(
        self, message: str, kind: NotificationKind, description: str | None = None
    ) -> None: ...


class CachedView(Protocol):
    """Externally cached view of ledger data."""

    @property
    def data(self) -> Any: ...

    async def invalidate(self) -> None: ...

    async def refetch(self) -> Any: ...
