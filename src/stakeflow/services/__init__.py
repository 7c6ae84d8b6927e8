"""StakeFlow services."""
