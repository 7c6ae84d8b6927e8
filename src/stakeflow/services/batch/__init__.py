"""Batch submission."""

from stakeflow.services.batch.executor import BatchExecutor

__all__ = ["BatchExecutor"]
