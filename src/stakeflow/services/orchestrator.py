"""Orchestration of stake, unstake and claim actions.

One action runs through a fixed sequence of states:

    IDLE -> VALIDATING -> BUILDING_INTENTS -> SUBMITTING -> SETTLING -> IDLE

Validation failures return to IDLE straight from VALIDATING and leave the
selection untouched. Every action that gets past validation ends by
settling the cached views and clearing the selection, whatever happened
to the individual intents.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping, Sequence
from enum import Enum

import structlog

from stakeflow.config.logging import configure_logging
from stakeflow.config.pools import (
    StakePoolMetadata,
    find_pool_metadata,
    resolve_stake_pool_id,
)
from stakeflow.config.settings import Settings, get_settings
from stakeflow.constants.staking import ALLOWED_TOKENS_VIEW, STAKED_TOKENS_VIEW
from stakeflow.core.exceptions import (
    ConfigurationError,
    OrchestratorTransitionError,
    ValidationError,
)
from stakeflow.models.intent import ActionKind
from stakeflow.models.outcome import (
    ActionReport,
    ActionResult,
    BatchOutcome,
    Err,
    Ok,
    SubmissionFailure,
    ValidationFailure,
)
from stakeflow.models.pool import PoolConfig, ReceiptType
from stakeflow.models.token import StakedToken, UnstakedToken
from stakeflow.services.batch.executor import BatchExecutor
from stakeflow.services.intents.builder import IntentBuilder
from stakeflow.services.interfaces import (
    CachedView,
    NotificationConfig,
    NotificationSink,
    SigningContext,
    StakingProgramClient,
)
from stakeflow.services.notifications import LoggingNotificationSink, NotificationKind
from stakeflow.services.refresh.scheduler import RefreshScheduler
from stakeflow.services.selection.store import SelectionStore
from stakeflow.services.solana.rpc_client import SolanaRPCClient
from stakeflow.services.solana.submitter import RpcSubmissionService
from stakeflow.utils.units import short

logger = structlog.get_logger(__name__)

AnyToken = UnstakedToken | StakedToken
StateListener = Callable[["OrchestratorState"], None]


class OrchestratorState(str, Enum):
    """Orchestrator states."""

    IDLE = "idle"
    VALIDATING = "validating"
    BUILDING_INTENTS = "building_intents"
    SUBMITTING = "submitting"
    SETTLING = "settling"


# Valid state transitions
STATE_TRANSITIONS: dict[OrchestratorState, list[OrchestratorState]] = {
    OrchestratorState.IDLE: [OrchestratorState.VALIDATING],
    OrchestratorState.VALIDATING: [
        OrchestratorState.BUILDING_INTENTS,
        OrchestratorState.IDLE,  # Validation failed
    ],
    OrchestratorState.BUILDING_INTENTS: [OrchestratorState.SUBMITTING],
    OrchestratorState.SUBMITTING: [OrchestratorState.SETTLING],
    OrchestratorState.SETTLING: [OrchestratorState.IDLE],
}

STAKE_NOTIFICATION = NotificationConfig(
    message="Successfully staked",
    description="Stake progress will now dynamically update",
)
CLAIM_NOTIFICATION = NotificationConfig(
    message="Successfully claimed rewards",
    description="These rewards are now available in your wallet",
)


def unstake_notification(cooldown_initiated: bool) -> NotificationConfig:
    """Success message for an unstake batch."""
    return NotificationConfig(
        message=f"Successfully {'initiated cooldown' if cooldown_initiated else 'unstaked'}",
        description="These tokens are now available in your wallet",
    )


class StakingOrchestrator:
    """
    Coordinates one stake, unstake or claim action at a time.

    Handles the full lifecycle:
    - Validation of wallet, pool and selection
    - Intent building with per-token failure isolation
    - Batch submission
    - View settlement and selection reset
    """

    def __init__(
        self,
        *,
        selection: SelectionStore,
        builder: IntentBuilder,
        executor: BatchExecutor,
        refresher: RefreshScheduler,
        notifier: NotificationSink,
        views: Mapping[str, CachedView] | None = None,
        pool_metadata: StakePoolMetadata | None = None,
        default_receipt_type: ReceiptType = ReceiptType.ORIGINAL,
    ) -> None:
        """
        Initialize StakingOrchestrator.

        Args:
            selection: Store of selected tokens
            builder: Intent builder
            executor: Batch executor
            refresher: View refresh scheduler
            notifier: Sink for validation failures
            views: Cached views, used by the "all" variants
            pool_metadata: Registered metadata of the active pool
            default_receipt_type: Receipt kind when nothing else decides
        """
        self.selection = selection
        self.builder = builder
        self.executor = executor
        self.refresher = refresher
        self.notifier = notifier
        self.views = dict(views or {})
        self.pool_metadata = pool_metadata
        self.default_receipt_type = default_receipt_type

        self.signing_context: SigningContext | None = None
        self.pool: PoolConfig | None = None
        self._receipt_type_choice: ReceiptType | None = None
        self._state = OrchestratorState.IDLE
        self._active_action: ActionKind | None = None
        self._listeners: list[StateListener] = []

    # ------------------------------------------------------------------
    # Collaborators
    # ------------------------------------------------------------------

    def connect(self, signing_context: SigningContext) -> None:
        self.signing_context = signing_context
        logger.info("wallet_connected", wallet=short(signing_context.public_key))

    def disconnect(self) -> None:
        self.signing_context = None
        logger.info("wallet_disconnected")

    def load_pool(self, pool: PoolConfig) -> None:
        """Set the active pool.

        Raises:
            ConfigurationError: If registered metadata names another pool.
        """
        if (
            self.pool_metadata is not None
            and pool.pool_id != self.pool_metadata.stake_pool_address
        ):
            raise ConfigurationError(
                f"Pool {pool.pool_id} does not match configured pool "
                f"{self.pool_metadata.stake_pool_address}"
            )
        self.pool = pool
        logger.info("stake_pool_loaded", pool_id=short(pool.pool_id))

    # ------------------------------------------------------------------
    # Receipt kind
    # ------------------------------------------------------------------

    @property
    def receipt_type(self) -> ReceiptType:
        """Active receipt kind.

        Pool metadata pins it when set; otherwise the caller's choice,
        then the pool's default, then the configured default.
        """
        if self.pool_metadata is not None and self.pool_metadata.receipt_type:
            return self.pool_metadata.receipt_type
        if self._receipt_type_choice is not None:
            return self._receipt_type_choice
        if self.pool is not None and self.pool.receipt_type is not None:
            return self.pool.receipt_type
        return self.default_receipt_type

    def set_receipt_type(self, receipt_type: ReceiptType) -> None:
        """Choose the receipt kind for following stakes.

        Raises:
            ConfigurationError: If the pool metadata pins the receipt kind.
        """
        if self.pool_metadata is not None and self.pool_metadata.receipt_type:
            raise ConfigurationError(
                f"Receipt type is fixed to {self.pool_metadata.receipt_type.value} "
                "for this pool"
            )
        self._receipt_type_choice = receipt_type

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def state(self) -> OrchestratorState:
        return self._state

    @property
    def is_busy(self) -> bool:
        return self._state != OrchestratorState.IDLE

    @property
    def active_action(self) -> ActionKind | None:
        return self._active_action

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Call ``listener`` with every new state.

        Returns:
            Function removing the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _transition(self, new_state: OrchestratorState) -> None:
        valid_next = STATE_TRANSITIONS.get(self._state, [])
        if new_state not in valid_next:
            raise OrchestratorTransitionError(
                f"Invalid transition: {self._state.value} -> {new_state.value}. "
                f"Valid transitions: {[s.value for s in valid_next]}"
            )
        self._set_state(new_state)

    def _set_state(self, new_state: OrchestratorState) -> None:
        self._state = new_state
        logger.debug("orchestrator_state", state=new_state.value)
        for listener in list(self._listeners):
            try:
                listener(new_state)
            except Exception as e:
                logger.warning("state_listener_failed", error=str(e))

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def select(self, token: AnyToken, amount: str | None = None) -> bool:
        """Toggle a token in the selection on behalf of the connected wallet."""
        owner = self.signing_context.public_key if self.signing_context else None
        return self.selection.toggle(token, amount, owner=owner)

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    async def stake(self, all_tokens: bool = False) -> ActionResult:
        """Stake the selected tokens, or every allowed token."""
        return await self.run(ActionKind.STAKE, use_all=all_tokens)

    async def unstake(self, all_tokens: bool = False) -> ActionResult:
        """Unstake the selected tokens, or every staked token."""
        return await self.run(ActionKind.UNSTAKE, use_all=all_tokens)

    async def claim_rewards(self, all_tokens: bool = False) -> ActionResult:
        """Claim rewards for the selected tokens, or every staked token."""
        return await self.run(ActionKind.CLAIM_REWARDS, use_all=all_tokens)

    async def run(self, action: ActionKind, use_all: bool = False) -> ActionResult:
        """Run one action end to end.

        Returns:
            Ok with the action report, or Err with a validation or
            submission failure. Submission failures have already been
            notified by the submission service and are not notified again.
        """
        log = logger.bind(action=action.value, use_all=use_all)

        if self.is_busy:
            log.info("action_rejected_busy", active=self._active_action)
            return Err(
                ValidationFailure(action=action, reason="Another action is in progress")
            )

        self._active_action = action
        try:
            with self.selection.frozen_while():
                self._transition(OrchestratorState.VALIDATING)
                try:
                    tokens = self._validate(action, use_all)
                except ValidationError as e:
                    log.info("action_validation_failed", reason=str(e))
                    self.notifier.notify(str(e), NotificationKind.ERROR)
                    self._transition(OrchestratorState.IDLE)
                    return Err(ValidationFailure(action=action, reason=str(e)))

                report = await self._execute(
                    action, tokens, self.pool, self.signing_context, log
                )
        finally:
            if self._state != OrchestratorState.IDLE:
                log.error("action_aborted", state=self._state.value)
                self._set_state(OrchestratorState.IDLE)
            self._active_action = None

        if report.outcome.wave_errors:
            reason = "; ".join(
                f"{w.wave}: {w.reason}" for w in report.outcome.wave_errors
            )
            log.warning("action_submission_failed", reason=reason)
            return Err(SubmissionFailure(action=action, reason=reason, report=report))

        log.info(
            "action_completed",
            status=report.outcome.status.value,
            build_failures=len(report.build_failures),
        )
        return Ok(report)

    async def _execute(
        self,
        action: ActionKind,
        tokens: Sequence[AnyToken],
        pool: PoolConfig,
        signing_context: SigningContext,
        log,
    ) -> ActionReport:
        self._transition(OrchestratorState.BUILDING_INTENTS)
        built = await self.builder.build_all(
            action,
            tokens,
            pool,
            signing_context,
            receipt_type=self.receipt_type,
            amounts=self.selection.amounts,
        )
        report = ActionReport(
            action=action,
            token_count=len(tokens),
            build_failures=built.failures,
            cooldown_initiated=built.cooldown_initiated,
        )

        self._transition(OrchestratorState.SUBMITTING)
        if built.intents:
            report.outcome = await self.executor.submit(
                built.intents,
                signing_context,
                self._notification_config(action, built.cooldown_initiated),
            )
        else:
            report.outcome = BatchOutcome()
            log.info("nothing_to_submit")

        self._transition(OrchestratorState.SETTLING)
        try:
            await self.refresher.settle()
        except Exception as e:
            log.warning("settle_failed", error=str(e))
        finally:
            self.selection.clear()
        self._transition(OrchestratorState.IDLE)
        return report

    def _validate(self, action: ActionKind, use_all: bool) -> list[AnyToken]:
        """Check preconditions and pick the tokens to act on.

        Raises:
            ValidationError: If the action cannot start.
        """
        if self.signing_context is None or not self.signing_context.connected:
            raise ValidationError("Wallet not connected")
        if self.pool is None:
            raise ValidationError("No stake pool detected")

        tokens: list[AnyToken]
        if action == ActionKind.STAKE:
            tokens = list(
                self._view_data(ALLOWED_TOKENS_VIEW) if use_all else self.selection.unstaked
            )
        else:
            tokens = list(
                self._view_data(STAKED_TOKENS_VIEW) if use_all else self.selection.staked
            )
        if not tokens:
            raise ValidationError("No tokens selected")
        return tokens

    def _view_data(self, name: str) -> list:
        view = self.views.get(name)
        return list(view.data or []) if view is not None else []

    @staticmethod
    def _notification_config(
        action: ActionKind, cooldown_initiated: bool
    ) -> NotificationConfig:
        if action == ActionKind.STAKE:
            return STAKE_NOTIFICATION
        if action == ActionKind.UNSTAKE:
            return unstake_notification(cooldown_initiated)
        return CLAIM_NOTIFICATION

    async def aclose(self) -> None:
        """Cancel a pending refresh and close the ledger connection."""
        await self.refresher.aclose()
        if isinstance(self.executor.connection, SolanaRPCClient):
            await self.executor.connection.close()


def build_orchestrator(
    program: StakingProgramClient,
    views: Mapping[str, CachedView],
    *,
    notifier: NotificationSink | None = None,
    settings: Settings | None = None,
    registry: Iterable[StakePoolMetadata] = (),
) -> StakingOrchestrator:
    """Wire an orchestrator from settings.

    Raises:
        ConfigurationError: If the configured stake pool cannot be resolved.
    """
    settings = settings or get_settings()
    configure_logging(settings)
    notifier = notifier or LoggingNotificationSink()
    registry = list(registry)

    pool_address = resolve_stake_pool_id(settings.stake_pool_id, registry)
    if pool_address is None:
        raise ConfigurationError(f"Unknown stake pool: {settings.stake_pool_id!r}")

    connection = SolanaRPCClient(settings)
    submission = RpcSubmissionService(
        notifier, confirmation_max_attempts=settings.confirmation_max_attempts
    )
    metadata = find_pool_metadata(pool_address, registry) or StakePoolMetadata(
        name=pool_address, stake_pool_address=pool_address
    )

    logger.info(
        "orchestrator_built",
        pool_id=short(pool_address),
        settlement_delay=settings.settlement_delay_seconds,
    )
    return StakingOrchestrator(
        selection=SelectionStore(notifier),
        builder=IntentBuilder(program, notifier),
        executor=BatchExecutor(connection, submission),
        refresher=RefreshScheduler(views, delay_seconds=settings.settlement_delay_seconds),
        notifier=notifier,
        views=views,
        pool_metadata=metadata,
        default_receipt_type=settings.default_receipt_type,
    )
