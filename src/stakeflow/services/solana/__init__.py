"""Solana RPC access and transaction submission."""

from stakeflow.services.solana.rpc_client import SolanaRPCClient
from stakeflow.services.solana.submitter import RpcSubmissionService

__all__ = ["RpcSubmissionService", "SolanaRPCClient"]
