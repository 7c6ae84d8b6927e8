"""Solana RPC client for account reads and transaction submission.

The client extends BaseRPCClient to inherit:
- Automatic retry with exponential backoff
- Circuit breaker pattern for failure protection
- Proper resource cleanup
"""

import base64
from collections.abc import Sequence
from typing import Any

import structlog

from stakeflow.config.settings import Settings, get_settings
from stakeflow.constants.staking import TOKEN_PROGRAM_ID
from stakeflow.core.exceptions import LedgerConnectionError
from stakeflow.models.token import TokenAccount
from stakeflow.services.base import BaseRPCClient
from stakeflow.utils.units import short

log = structlog.get_logger(__name__)


class SolanaRPCClient(BaseRPCClient):
    """Ledger connection over Solana JSON-RPC.

    Example:
        client = SolanaRPCClient()
        accounts = await client.get_token_accounts_by_owner("wallet_address")
        await client.close()
    """

    def __init__(self, settings: Settings | None = None) -> None:
        """Initialize Solana RPC client with settings."""
        settings = settings or get_settings()
        super().__init__(
            endpoint=settings.solana_rpc_url,
            timeout=settings.rpc_timeout_seconds,
            circuit_breaker_threshold=settings.circuit_breaker_threshold,
            circuit_breaker_cooldown=settings.circuit_breaker_cooldown,
        )
        log.debug("solana_rpc_client_initialized", endpoint=settings.solana_rpc_url)

    async def get_account_info(self, address: str) -> dict[str, Any] | None:
        """Get parsed account info.

        Returns:
            Account info dict, None if the account does not exist.

        Raises:
            LedgerConnectionError: If RPC call fails after retries.
        """
        try:
            result = await self.call(
                "getAccountInfo", [address, {"encoding": "jsonParsed"}]
            )
        except Exception as e:
            log.error("solana_get_account_info_failed", address=short(address), error=str(e))
            raise LedgerConnectionError(
                f"Failed to get account info: {e}", address=address
            ) from e

        value = (result or {}).get("value")
        if value is None:
            log.debug("solana_account_not_found", address=short(address))
        return value

    async def get_token_accounts_by_owner(self, owner: str) -> list[TokenAccount]:
        """List the SPL token accounts of a wallet.

        Accounts that fail to parse are skipped with a warning.

        Raises:
            LedgerConnectionError: If RPC call fails after retries.
        """
        try:
            result = await self.call(
                "getTokenAccountsByOwner",
                [owner, {"programId": TOKEN_PROGRAM_ID}, {"encoding": "jsonParsed"}],
            )
        except Exception as e:
            log.error("solana_get_token_accounts_failed", owner=short(owner), error=str(e))
            raise LedgerConnectionError(
                f"Failed to get token accounts: {e}", address=owner
            ) from e

        accounts: list[TokenAccount] = []
        for item in (result or {}).get("value", []):
            try:
                info = item["account"]["data"]["parsed"]["info"]
                token_amount = info.get("tokenAmount", {})
                accounts.append(
                    TokenAccount(
                        pubkey=item["pubkey"],
                        mint=info["mint"],
                        owner=info["owner"],
                        amount=int(token_amount.get("amount", "0")),
                        decimals=int(token_amount.get("decimals", 0)),
                    )
                )
            except (KeyError, TypeError, ValueError) as e:
                log.warning(
                    "solana_token_account_parse_error",
                    account_pubkey=item.get("pubkey", "unknown"),
                    error=str(e),
                )
                continue

        log.info("solana_token_accounts_retrieved", owner=short(owner), count=len(accounts))
        return accounts

    async def send_transaction(self, raw: bytes) -> str:
        """Send a signed, serialized transaction.

        Returns:
            Transaction signature.

        Raises:
            LedgerConnectionError: If the node rejects the transaction.
        """
        encoded = base64.b64encode(raw).decode("ascii")
        try:
            signature = await self.call(
                "sendTransaction",
                [encoded, {"encoding": "base64", "preflightCommitment": "confirmed"}],
            )
        except Exception as e:
            log.error("solana_send_transaction_failed", error=str(e))
            raise LedgerConnectionError(f"Failed to send transaction: {e}") from e

        log.debug("solana_transaction_sent", signature=short(signature))
        return signature

    async def get_signature_statuses(
        self, signatures: Sequence[str]
    ) -> list[dict[str, Any] | None]:
        """Get the statuses of transaction signatures, in input order.

        Raises:
            LedgerConnectionError: If RPC call fails after retries.
        """
        try:
            result = await self.call(
                "getSignatureStatuses",
                [list(signatures), {"searchTransactionHistory": False}],
            )
        except Exception as e:
            log.error("solana_get_signature_statuses_failed", error=str(e))
            raise LedgerConnectionError(f"Failed to get signature statuses: {e}") from e
        return list((result or {}).get("value", []))
