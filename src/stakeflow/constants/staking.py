"""Staking orchestration constants."""

from typing import Final

# Refresh after a batch (ledger convergence heuristic, not a confirmation)
SETTLEMENT_DELAY_SECONDS: Final[float] = 2.0

# Natural amount of a non-fungible token
SINGLE_UNIT: Final[int] = 1

# Cached view names
ALLOWED_TOKENS_VIEW: Final[str] = "allowed_tokens"
STAKED_TOKENS_VIEW: Final[str] = "staked_tokens"
POOL_ENTRIES_VIEW: Final[str] = "pool_entries"

# Solana programs
TOKEN_PROGRAM_ID: Final[str] = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"

# Signature confirmation polling
CONFIRMATION_POLL_MIN_SECONDS: Final[float] = 0.5
CONFIRMATION_POLL_MAX_SECONDS: Final[float] = 2.0

# Base58 alphabet (no 0, O, I, l)
BASE58_ALPHABET: Final[str] = (
    "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
)
