"""View refresh after a batch."""

from stakeflow.services.refresh.scheduler import RefreshScheduler

__all__ = ["RefreshScheduler"]
