"""Batch staking orchestration for Solana stake pools."""

__version__ = "0.1.0"
