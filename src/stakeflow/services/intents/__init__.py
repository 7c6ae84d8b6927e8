"""Intent building."""

from stakeflow.services.intents.builder import BuildReport, IntentBuilder

__all__ = ["BuildReport", "IntentBuilder"]
