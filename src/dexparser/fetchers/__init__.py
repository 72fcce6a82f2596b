"""
Pluggable account resolution.

A fetcher pairs a ``FetchFilter`` with a callable. The parser invokes it
only for transactions the filter admits, so RPC round trips can be limited
to the programs or accounts a caller cares about.
"""

from .base import (
    AltsFetcher,
    FetchFilter,
    PoolInfoFetcher,
    TokenAccountInfo,
    TokenAccountsFetcher,
    resolve_loaded_addresses,
    resolve_token_accounts,
)
from .rpc import RpcClient, RpcError

__all__ = [
    "AltsFetcher",
    "FetchFilter",
    "PoolInfoFetcher",
    "TokenAccountInfo",
    "TokenAccountsFetcher",
    "resolve_loaded_addresses",
    "resolve_token_accounts",
    "RpcClient",
    "RpcError",
]
