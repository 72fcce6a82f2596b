"""
JSON-RPC client for fetching transactions and the accounts a parse may need.

Built on ``httpx``; every call is a single POST to the configured endpoint.
"""

import base64
import logging
from typing import Any, Dict, List, Optional, Sequence

import httpx
from solders.pubkey import Pubkey

from ..config import RpcConfig
from .base import (
    AltsFetcher,
    FetchFilter,
    PoolInfoFetcher,
    TokenAccountInfo,
    TokenAccountsFetcher,
)

logger = logging.getLogger(__name__)

# getMultipleAccounts accepts at most 100 keys per call
MAX_ACCOUNTS_PER_CALL = 100
# Lookup-table account: 56-byte metadata header, then 32-byte addresses
LOOKUP_TABLE_META_SIZE = 56


class RpcError(Exception):
    """Raised when the RPC node returns an error object."""

    def __init__(self, method: str, error: Any):
        self.method = method
        self.error = error
        message = error.get("message") if isinstance(error, dict) else error
        super().__init__(f"{method} failed: {message}")


def decode_lookup_table(data: bytes) -> List[str]:
    """Addresses stored in a lookup-table account."""
    body = data[LOOKUP_TABLE_META_SIZE:]
    return [str(Pubkey.from_bytes(body[i:i + 32])) for i in range(0, len(body) - len(body) % 32, 32)]


class RpcClient:
    """
    Minimal Solana JSON-RPC client.

    Usable as a context manager; ``close()`` releases the pooled connection.
    """

    def __init__(self, config: Optional[RpcConfig] = None, client: Optional[httpx.Client] = None):
        self.config = config or RpcConfig()
        self._client = client or httpx.Client(timeout=self.config.timeout)
        self._request_id = 0

    def __enter__(self) -> "RpcClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def call(self, method: str, params: Sequence[Any]) -> Any:
        self._request_id += 1
        response = self._client.post(
            self.config.rpc_url,
            json={
                "jsonrpc": "2.0",
                "id": self._request_id,
                "method": method,
                "params": list(params),
            },
        )
        response.raise_for_status()
        payload = response.json()
        if payload.get("error"):
            raise RpcError(method, payload["error"])
        return payload.get("result")

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def get_transaction(self, signature: str, encoding: str = "json") -> Optional[Dict[str, Any]]:
        """``getTransaction`` result, or ``None`` when the node does not have it."""
        logger.debug("Fetching transaction %s", signature)
        return self.call("getTransaction", [
            signature,
            {
                "encoding": encoding,
                "commitment": self.config.commitment,
                "maxSupportedTransactionVersion": 0,
            },
        ])

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    def get_multiple_accounts(self, keys: Sequence[str], encoding: str = "base64") -> List[Optional[Dict[str, Any]]]:
        """Account objects in ``keys`` order; ``None`` for missing accounts."""
        accounts: List[Optional[Dict[str, Any]]] = []
        for start in range(0, len(keys), MAX_ACCOUNTS_PER_CALL):
            chunk = list(keys[start:start + MAX_ACCOUNTS_PER_CALL])
            result = self.call("getMultipleAccounts", [
                chunk,
                {"encoding": encoding, "commitment": self.config.commitment},
            ])
            accounts.extend((result or {}).get("value") or [None] * len(chunk))
        return accounts

    @staticmethod
    def _account_bytes(account: Dict[str, Any]) -> bytes:
        data = account.get("data")
        if isinstance(data, list) and data:
            return base64.b64decode(data[0])
        return b""

    def fetch_lookup_tables(self, table_keys: Sequence[str]) -> Dict[str, List[str]]:
        tables: Dict[str, List[str]] = {}
        for key, account in zip(table_keys, self.get_multiple_accounts(table_keys)):
            if account is None:
                logger.warning("Lookup table %s not found", key)
                continue
            tables[key] = decode_lookup_table(self._account_bytes(account))
        return tables

    def fetch_token_accounts(self, keys: Sequence[str]) -> List[Optional[TokenAccountInfo]]:
        infos: List[Optional[TokenAccountInfo]] = []
        for account in self.get_multiple_accounts(keys, encoding="jsonParsed"):
            try:
                info = account["data"]["parsed"]["info"]
                token_amount = info["tokenAmount"]
                infos.append(TokenAccountInfo(
                    mint=info["mint"],
                    owner=info.get("owner", ""),
                    amount=str(token_amount.get("amount", "0")),
                    decimals=int(token_amount.get("decimals", 0)),
                ))
            except (KeyError, TypeError):
                infos.append(None)
        return infos

    def fetch_pool_infos(self, keys: Sequence[str]) -> List[Optional[Dict[str, Any]]]:
        """Raw pool accounts: owner program, lamports and data bytes."""
        infos: List[Optional[Dict[str, Any]]] = []
        for key, account in zip(keys, self.get_multiple_accounts(keys)):
            if account is None:
                infos.append(None)
                continue
            infos.append({
                "pubkey": key,
                "owner": account.get("owner", ""),
                "lamports": int(account.get("lamports") or 0),
                "data": self._account_bytes(account),
            })
        return infos

    # ------------------------------------------------------------------
    # Fetcher factories
    # ------------------------------------------------------------------

    def alts_fetcher(self, filter: FetchFilter = FetchFilter.ALL) -> AltsFetcher:
        return AltsFetcher(filter, self.fetch_lookup_tables)

    def token_accounts_fetcher(self, filter: FetchFilter = FetchFilter.ALL) -> TokenAccountsFetcher:
        return TokenAccountsFetcher(filter, self.fetch_token_accounts)

    def pool_info_fetcher(self, filter: FetchFilter = FetchFilter.ALL) -> PoolInfoFetcher:
        return PoolInfoFetcher(filter, self.fetch_pool_infos)
