"""Build operation intents for a batch of tokens.

Each token is built independently. A token that fails (missing account,
bad amount, already staked) is reported through the notification sink and
left out; the remaining tokens are still built.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

import structlog

from stakeflow.constants.staking import SINGLE_UNIT
from stakeflow.core.exceptions import (
    AlreadyStakedError,
    BuildError,
    InvalidAmountError,
    MissingAccountError,
    MissingStakeEntryError,
)
from stakeflow.models.intent import (
    ActionKind,
    IntentKind,
    OperationIntent,
    PreparedIntent,
)
from stakeflow.models.outcome import BuildFailure
from stakeflow.models.pool import PoolConfig, ReceiptType
from stakeflow.models.token import StakedToken, UnstakedToken
from stakeflow.services.interfaces import (
    NotificationSink,
    SigningContext,
    StakingProgramClient,
)
from stakeflow.services.notifications import NotificationKind
from stakeflow.utils.units import parse_natural_amount_from_decimal, short

logger = structlog.get_logger(__name__)

AnyToken = UnstakedToken | StakedToken

_ACTION_VERBS = {
    ActionKind.STAKE: "stake",
    ActionKind.UNSTAKE: "unstake",
    ActionKind.CLAIM_REWARDS: "claim rewards for",
}


@dataclass
class BuildReport:
    """Intents built for one action, plus the tokens that were dropped."""

    intents: list[PreparedIntent] = field(default_factory=list)
    failures: list[BuildFailure] = field(default_factory=list)
    cooldown_initiated: bool = False

    @property
    def receipt_intents(self) -> list[PreparedIntent]:
        return [p for p in self.intents if p.kind == IntentKind.CREATE_RECEIPT]


class IntentBuilder:
    """
    Turns selected tokens into prepared intents.

    Handles:
    - Stake: account check, amount conversion, already-staked check and
      the optional receipt entry creation ahead of the stake
    - Unstake: stake entry check and the cooldown notice
    - Claim rewards: stake entry check
    """

    def __init__(
        self,
        program: StakingProgramClient,
        notifier: NotificationSink,
    ) -> None:
        """
        Initialize IntentBuilder.

        Args:
            program: Staking program client building unsigned transactions
            notifier: Sink for per-token failures and notices
        """
        self.program = program
        self.notifier = notifier

    async def build_all(
        self,
        action: ActionKind,
        tokens: Sequence[AnyToken],
        pool: PoolConfig,
        signing_context: SigningContext,
        *,
        receipt_type: ReceiptType = ReceiptType.ORIGINAL,
        amounts: Mapping[str, str] | None = None,
    ) -> BuildReport:
        """Build intents for every token, isolating per-token failures.

        Tokens are built concurrently. Intents come back grouped per token
        in the order the tokens were given.
        """
        amounts = amounts or {}
        report = BuildReport()

        async def build_one(token: AnyToken) -> list[PreparedIntent]:
            return await self.build(
                action,
                token,
                pool,
                signing_context,
                receipt_type=receipt_type,
                amount=amounts.get(token.key),
                report=report,
            )

        results = await asyncio.gather(
            *(build_one(token) for token in tokens), return_exceptions=True
        )

        for token, result in zip(tokens, results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                self._report_failure(action, token, result, report)
                continue
            report.intents.extend(result)

        logger.info(
            "intents_built",
            action=action.value,
            tokens=len(tokens),
            intents=len(report.intents),
            failures=len(report.failures),
        )
        return report

    async def build(
        self,
        action: ActionKind,
        token: AnyToken,
        pool: PoolConfig,
        signing_context: SigningContext,
        *,
        receipt_type: ReceiptType = ReceiptType.ORIGINAL,
        amount: str | None = None,
        report: BuildReport | None = None,
    ) -> list[PreparedIntent]:
        """Build the intents one token needs for an action.

        Raises:
            BuildError: If the token cannot take part in the action.
        """
        if action == ActionKind.STAKE:
            if not isinstance(token, UnstakedToken):
                raise BuildError("Only unstaked tokens can be staked", token.key)
            return await self._build_stake(
                token, pool, signing_context, receipt_type, amount
            )
        if action == ActionKind.UNSTAKE:
            if not isinstance(token, StakedToken):
                raise MissingStakeEntryError("No stake entry for token", token.key)
            return await self._build_unstake(token, pool, signing_context, report)
        if action == ActionKind.CLAIM_REWARDS:
            if not isinstance(token, StakedToken):
                raise MissingStakeEntryError("No stake entry for token", token.key)
            return await self._build_claim(token, pool, signing_context)
        raise ValueError(f"Unknown action: {action}")

    # ------------------------------------------------------------------
    # Per action
    # ------------------------------------------------------------------

    async def _build_stake(
        self,
        token: UnstakedToken,
        pool: PoolConfig,
        signing_context: SigningContext,
        receipt_type: ReceiptType,
        amount: str | None,
    ) -> list[PreparedIntent]:
        if token.token_account is None:
            raise MissingAccountError("Token account not set", token.key)

        natural_amount = self._natural_amount(token, amount)

        if (
            token.is_fungible
            and token.stake_entry is not None
            and token.stake_entry.amount > 0
        ):
            raise AlreadyStakedError(
                "Fungible tokens already staked in the pool. Staked tokens need "
                "to be unstaked and then restaked together with the new tokens.",
                token.key,
            )

        single_unit = natural_amount is None or natural_amount == SINGLE_UNIT
        prepared: list[PreparedIntent] = []

        if receipt_type == ReceiptType.RECEIPT and single_unit:
            receipt_tx, stake_mint_keypair = await self.program.build_create_receipt_intent(
                signing_context, pool_id=pool.pool_id, original_mint=token.mint
            )
            if receipt_tx.instructions:
                prepared.append(
                    PreparedIntent(
                        intent=OperationIntent(
                            kind=IntentKind.CREATE_RECEIPT,
                            pool_id=pool.pool_id,
                            token_key=token.key,
                            mint=token.mint,
                            receipt_type=ReceiptType.RECEIPT,
                        ),
                        transaction=receipt_tx,
                        signers=(stake_mint_keypair,) if stake_mint_keypair else (),
                    )
                )
            else:
                logger.debug("receipt_entry_exists", token=short(token.key))

        forwarded_receipt = receipt_type if single_unit else None
        stake_tx = await self.program.build_stake_intent(
            signing_context,
            pool_id=pool.pool_id,
            original_mint=token.mint,
            user_token_account=token.token_account.pubkey,
            amount=natural_amount,
            receipt_type=forwarded_receipt,
        )
        prepared.append(
            PreparedIntent(
                intent=OperationIntent(
                    kind=IntentKind.STAKE,
                    pool_id=pool.pool_id,
                    token_key=token.key,
                    mint=token.mint,
                    amount=natural_amount,
                    receipt_type=forwarded_receipt,
                ),
                transaction=stake_tx,
            )
        )
        return prepared

    async def _build_unstake(
        self,
        token: StakedToken,
        pool: PoolConfig,
        signing_context: SigningContext,
        report: BuildReport | None,
    ) -> list[PreparedIntent]:
        entry = token.stake_entry
        if entry is None:
            raise MissingStakeEntryError("No stake entry for token", token.key)

        if (
            pool.enforces_cooldown
            and not entry.cooldown_start_seconds
            and not pool.min_stake_seconds
        ):
            self.notifier.notify(
                f"Cooldown period will be initiated for {token.label} "
                "unless minimum stake period unsatisfied",
                NotificationKind.INFO,
            )
            if report is not None:
                report.cooldown_initiated = True

        unstake_tx = await self.program.build_unstake_intent(
            signing_context, pool_id=pool.pool_id, original_mint=entry.original_mint
        )
        return [
            PreparedIntent(
                intent=OperationIntent(
                    kind=IntentKind.UNSTAKE,
                    pool_id=pool.pool_id,
                    token_key=token.key,
                    mint=entry.original_mint,
                    stake_entry_id=entry.pubkey,
                ),
                transaction=unstake_tx,
            )
        ]

    async def _build_claim(
        self,
        token: StakedToken,
        pool: PoolConfig,
        signing_context: SigningContext,
    ) -> list[PreparedIntent]:
        entry = token.stake_entry
        if entry is None:
            raise MissingStakeEntryError("No stake entry for token", token.key)

        claim_tx = await self.program.build_claim_intent(
            signing_context, pool_id=pool.pool_id, stake_entry_id=entry.pubkey
        )
        return [
            PreparedIntent(
                intent=OperationIntent(
                    kind=IntentKind.CLAIM_REWARDS,
                    pool_id=pool.pool_id,
                    token_key=token.key,
                    mint=entry.original_mint,
                    stake_entry_id=entry.pubkey,
                ),
                transaction=claim_tx,
            )
        ]

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _natural_amount(
        self, token: UnstakedToken, amount: str | None
    ) -> int | None:
        """Natural amount to stake, None for a single non-fungible unit."""
        if not token.is_fungible:
            return None
        if not amount:
            raise InvalidAmountError("Invalid amount chosen for token", token.key)
        if token.decimals is None:
            raise InvalidAmountError(
                "Unknown decimal precision for token", token.key
            )
        try:
            natural = parse_natural_amount_from_decimal(amount, token.decimals)
        except ValueError as e:
            raise InvalidAmountError(str(e), token.key) from e
        if natural <= 0:
            raise InvalidAmountError(
                f"Amount {amount} is below the token's smallest unit", token.key
            )
        return natural

    def _report_failure(
        self,
        action: ActionKind,
        token: AnyToken,
        error: Exception,
        report: BuildReport,
    ) -> None:
        logger.warning(
            "intent_build_failed",
            action=action.value,
            token=short(token.key),
            error_type=type(error).__name__,
            error=str(error),
        )
        self.notifier.notify(
            f"Failed to {_ACTION_VERBS[action]} token {token.key}",
            NotificationKind.ERROR,
            description=str(error),
        )
        report.failures.append(
            BuildFailure(
                token_key=token.key,
                error_type=type(error).__name__,
                reason=str(error),
            )
        )
