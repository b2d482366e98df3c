"""SPL Governance data source — RPC client, account layouts, proposal fetcher."""

from realmwatch.governance.exceptions import (
    AccountDecodeError,
    FatalUpstreamError,
    GovernanceError,
    RateLimitedError,
    TransientUpstreamError,
)
from realmwatch.governance.fetcher import ProposalFetcher
from realmwatch.governance.layout import AccountType, decode_proposal, is_valid_pubkey
from realmwatch.governance.rpc import SolanaRpcClient

__all__ = [
    "AccountDecodeError",
    "AccountType",
    "FatalUpstreamError",
    "GovernanceError",
    "ProposalFetcher",
    "RateLimitedError",
    "SolanaRpcClient",
    "TransientUpstreamError",
    "decode_proposal",
    "is_valid_pubkey",
]
