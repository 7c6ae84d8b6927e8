"""Selection of tokens for the next stake or unstake action.

The store keeps two selections keyed by token identity: unstaked tokens
by mint and staked tokens by stake entry. Requested amounts for fungible
tokens live in a separate mapping from mint to display amount; token
records themselves are never modified.

While an action is in flight the store is frozen and every toggle is a
no-op.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from types import MappingProxyType

import structlog

from stakeflow.models.token import StakedToken, UnstakedToken
from stakeflow.services.interfaces import NotificationSink
from stakeflow.services.notifications import NotificationKind
from stakeflow.utils.units import parse_decimal_amount, short

log = structlog.get_logger(__name__)


class SelectionStore:
    """Tokens chosen for the next action.

    Example:
        store = SelectionStore(notifier)
        store.toggle(nft)                  # select
        store.toggle(fungible, "2.5")      # select 2.5 units
        store.toggle(nft)                  # deselect
    """

    def __init__(self, notifier: NotificationSink) -> None:
        self._notifier = notifier
        self._unstaked: dict[str, UnstakedToken] = {}
        self._staked: dict[str, StakedToken] = {}
        self._amounts: Mapping[str, str] = MappingProxyType({})
        self._frozen = False

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def unstaked(self) -> list[UnstakedToken]:
        """Selected unstaked tokens, in selection order."""
        return list(self._unstaked.values())

    @property
    def staked(self) -> list[StakedToken]:
        """Selected staked tokens, in selection order."""
        return list(self._staked.values())

    @property
    def amounts(self) -> Mapping[str, str]:
        """Read-only mapping of mint to requested display amount."""
        return self._amounts

    def amount_for(self, token: UnstakedToken) -> str | None:
        return self._amounts.get(token.key)

    def is_selected(self, token: UnstakedToken | StakedToken) -> bool:
        if isinstance(token, UnstakedToken):
            return token.key in self._unstaked
        if isinstance(token, StakedToken):
            return token.key in self._staked
        raise TypeError(f"Unsupported token type: {type(token).__name__}")

    def is_empty(self) -> bool:
        return not self._unstaked and not self._staked

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def toggle(
        self,
        token: UnstakedToken | StakedToken,
        amount: str | None = None,
        *,
        owner: str | None = None,
    ) -> bool:
        """Select or deselect a token.

        Args:
            token: Token to toggle.
            amount: Display amount for a fungible unstaked token.
            owner: Identity of the signing context. When given, a staked
                token is only selectable by the wallet that staked it.

        Returns:
            True if the selection changed.
        """
        if self._frozen:
            log.debug("selection_toggle_ignored_frozen", token=short(token.key))
            return False

        if isinstance(token, UnstakedToken):
            if token.is_fungible:
                return self._toggle_fungible(token, amount)
            return self._toggle_key(self._unstaked, token)
        if isinstance(token, StakedToken):
            return self._toggle_staked(token, owner)
        raise TypeError(f"Unsupported token type: {type(token).__name__}")

    def clear(self) -> None:
        """Empty both selections and drop every requested amount."""
        self._unstaked = {}
        self._staked = {}
        self._amounts = MappingProxyType({})
        log.debug("selection_cleared")

    @property
    def frozen(self) -> bool:
        return self._frozen

    @contextmanager
    def frozen_while(self) -> Iterator[None]:
        """Freeze the selection for the duration of the block."""
        self._frozen = True
        try:
            yield
        finally:
            self._frozen = False

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _toggle_fungible(self, token: UnstakedToken, amount: str | None) -> bool:
        if amount:
            if parse_decimal_amount(amount) is None:
                self._notifier.notify(
                    "Please enter a valid amount", NotificationKind.ERROR
                )
                log.info(
                    "selection_amount_rejected",
                    token=short(token.key),
                    amount=amount,
                )
                return False
            # A supplied amount always replaces the existing entry
            unstaked = {k: v for k, v in self._unstaked.items() if k != token.key}
            unstaked[token.key] = token
            self._unstaked = unstaked
            self._set_amount(token.key, amount.strip())
            log.debug("selection_amount_set", token=short(token.key), amount=amount)
            return True

        if token.key not in self._unstaked:
            return False
        self._unstaked = {k: v for k, v in self._unstaked.items() if k != token.key}
        self._set_amount(token.key, None)
        return True

    def _toggle_staked(self, token: StakedToken, owner: str | None) -> bool:
        staker = token.stake_entry.last_staker if token.stake_entry else None
        if owner is not None and staker != owner:
            log.debug(
                "selection_toggle_ignored_not_staker",
                token=short(token.key),
                staker=short(staker),
            )
            return False
        return self._toggle_key(self._staked, token)

    def _toggle_key(self, selection: dict, token: UnstakedToken | StakedToken) -> bool:
        if token.key in selection:
            del selection[token.key]
        else:
            selection[token.key] = token
        return True

    def _set_amount(self, key: str, amount: str | None) -> None:
        amounts = {k: v for k, v in self._amounts.items() if k != key}
        if amount is not None:
            amounts[key] = amount
        self._amounts = MappingProxyType(amounts)
