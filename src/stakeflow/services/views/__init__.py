"""Cached ledger views."""

from stakeflow.services.views.cached_view import AsyncCachedView, build_views

__all__ = ["AsyncCachedView", "build_views"]
