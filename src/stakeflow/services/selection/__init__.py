"""Token selection state."""

from stakeflow.services.selection.store import SelectionStore

__all__ = ["SelectionStore"]
