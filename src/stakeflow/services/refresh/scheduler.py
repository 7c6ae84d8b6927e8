"""Refresh of cached views once a batch has been submitted.

Ledger confirmation is asynchronous, so the views are invalidated right
away and re-fetched after a settlement delay. The delay is a heuristic:
under high network latency the re-fetched views may still be stale.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping

import structlog

from stakeflow.constants.staking import SETTLEMENT_DELAY_SECONDS
from stakeflow.services.interfaces import CachedView

log = structlog.get_logger(__name__)


class RefreshScheduler:
    """Invalidate views now, re-fetch them after a fixed delay.

    Attributes:
        views: Cached views by name.
        delay_seconds: Settlement delay before the re-fetch.

    Example:
        scheduler = RefreshScheduler(views, delay_seconds=2.0)
        await scheduler.settle()
        ...
        await scheduler.aclose()
    """

    def __init__(
        self,
        views: Mapping[str, CachedView],
        delay_seconds: float = SETTLEMENT_DELAY_SECONDS,
    ) -> None:
        if delay_seconds < 0:
            raise ValueError("delay_seconds must be >= 0")
        self.views = dict(views)
        self.delay_seconds = delay_seconds
        self._pending: asyncio.Task[None] | None = None

    @property
    def pending(self) -> asyncio.Task[None] | None:
        """The scheduled re-fetch, if one has not finished yet."""
        if self._pending is not None and self._pending.done():
            return None
        return self._pending

    async def settle(self) -> asyncio.Task[None]:
        """Invalidate every view and schedule one re-fetch of all of them.

        A re-fetch still waiting from an earlier settle is replaced. A view
        that fails to invalidate is still re-fetched.

        Returns:
            The task performing the delayed re-fetch.
        """
        names = list(self.views)
        results = await asyncio.gather(
            *(self.views[name].invalidate() for name in names),
            return_exceptions=True,
        )
        for name, result in zip(names, results):
            if isinstance(result, Exception):
                log.warning("view_invalidate_failed", view=name, error=str(result))
        log.info("views_invalidated", views=sorted(self.views))

        previous = self.pending
        if previous is not None:
            previous.cancel()
            log.debug("refetch_rescheduled")

        self._pending = asyncio.create_task(self._refetch_after_delay())
        return self._pending

    async def wait(self) -> None:
        """Wait for the scheduled re-fetch to finish, if any."""
        pending = self.pending
        if pending is not None:
            try:
                await pending
            except asyncio.CancelledError:
                # Replaced by a newer settle while waiting
                pass

    async def aclose(self) -> None:
        """Cancel a re-fetch that has not run yet."""
        pending = self.pending
        if pending is not None:
            pending.cancel()
            try:
                await pending
            except asyncio.CancelledError:
                pass
        self._pending = None

    async def _refetch_after_delay(self) -> None:
        await asyncio.sleep(self.delay_seconds)
        names = list(self.views)
        results = await asyncio.gather(
            *(self.views[name].refetch() for name in names),
            return_exceptions=True,
        )
        for name, result in zip(names, results):
            if isinstance(result, Exception):
                log.warning("view_refetch_failed", view=name, error=str(result))
        log.info("views_refetched", views=sorted(names))
