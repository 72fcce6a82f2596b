"""Fetcher types and the resolution steps run before and after the adapter is built."""

import copy
import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Mapping, Optional, Sequence

from ..core.adapter import decode_wire_transaction

if TYPE_CHECKING:
    from ..config import ParseConfig

logger = logging.getLogger(__name__)


class FetchFilter(str, Enum):
    ALL = "all"
    PROGRAM = "program"
    ACCOUNT = "account"

    def admits(self, account_keys: Sequence[str], config: Optional["ParseConfig"]) -> bool:
        """Whether a transaction touching ``account_keys`` should be fetched for."""
        if self is FetchFilter.ALL:
            return True
        if config is None:
            return False
        wanted = config.program_ids if self is FetchFilter.PROGRAM else config.account_include
        return bool(set(wanted) & set(account_keys))


@dataclass
class TokenAccountInfo:
    mint: str
    owner: str = ""
    amount: str = "0"
    decimals: int = 0


@dataclass
class AltsFetcher:
    """Resolves lookup tables: ``fetch(table_keys) -> {table_key: addresses}``."""
    filter: FetchFilter
    fetch: Callable[[List[str]], Dict[str, List[str]]]


@dataclass
class TokenAccountsFetcher:
    """``fetch(accounts) -> [TokenAccountInfo or None]``, one entry per account."""
    filter: FetchFilter
    fetch: Callable[[List[str]], List[Optional[TokenAccountInfo]]]


@dataclass
class PoolInfoFetcher:
    """``fetch(pools) -> [pool info or None]``, one entry per pool."""
    filter: FetchFilter
    fetch: Callable[[List[str]], List[Optional[Dict[str, Any]]]]


def _transaction_body(tx: Mapping[str, Any]) -> Optional[Mapping[str, Any]]:
    transaction = tx.get("transaction")
    if isinstance(transaction, list) and len(transaction) == 2 and transaction[1] == "base64":
        return decode_wire_transaction(transaction[0])
    return transaction if isinstance(transaction, Mapping) else None


def _static_keys(message: Mapping[str, Any]) -> List[str]:
    keys = message.get("staticAccountKeys") or message.get("accountKeys") or []
    return [k if isinstance(k, str) else k.get("pubkey", "") for k in keys]


def resolve_loaded_addresses(tx: Mapping[str, Any], fetcher: Optional[AltsFetcher],
                             config: Optional["ParseConfig"] = None) -> Mapping[str, Any]:
    """
    Fill ``meta.loadedAddresses`` of a v0 transaction from its lookup tables.

    Returns ``tx`` unchanged when there is nothing to resolve, when the meta
    already carries the loaded addresses, or when the filter rejects it.
    Otherwise returns a copy with writable addresses (across all tables in
    lookup order) followed by readonly ones.
    """
    if fetcher is None:
        return tx
    body = _transaction_body(tx)
    if body is None:
        return tx
    message = body.get("message") or {}
    lookups = message.get("addressTableLookups") or []
    if not lookups:
        return tx
    meta = tx.get("meta") or {}
    loaded = meta.get("loadedAddresses") or {}
    if loaded.get("writable") or loaded.get("readonly"):
        return tx
    if not fetcher.filter.admits(_static_keys(message), config):
        return tx

    table_keys = [lookup["accountKey"] for lookup in lookups]
    tables = fetcher.fetch(table_keys)

    writable: List[str] = []
    readonly: List[str] = []
    for lookup in lookups:
        addresses = tables.get(lookup["accountKey"])
        if addresses is None:
            raise ValueError(f"Lookup table not found: {lookup['accountKey']}")
        for target, indexes in ((writable, lookup.get("writableIndexes")),
                                (readonly, lookup.get("readonlyIndexes"))):
            for index in indexes or []:
                if index >= len(addresses):
                    raise ValueError(f"Lookup index {index} out of range for {lookup['accountKey']}")
                target.append(addresses[index])

    logger.debug("Resolved %d writable and %d readonly lookup addresses", len(writable), len(readonly))
    resolved = dict(tx)
    resolved["transaction"] = body
    resolved_meta = copy.deepcopy(dict(meta))
    resolved_meta["loadedAddresses"] = {"writable": writable, "readonly": readonly}
    resolved["meta"] = resolved_meta
    return resolved


def resolve_token_accounts(adapter, fetcher: Optional[TokenAccountsFetcher],
                           config: Optional["ParseConfig"] = None) -> int:
    """Register fetched mints for accounts the adapter could not resolve; returns how many."""
    if fetcher is None or not fetcher.filter.admits(adapter.account_keys, config):
        return 0
    unknown = adapter.unknown_token_accounts()
    if not unknown:
        return 0
    infos = fetcher.fetch(unknown)
    resolved = 0
    for account, info in zip(unknown, infos):
        if info is None or not info.mint:
            continue
        adapter.register_token_account(account, info.mint, info.decimals)
        resolved += 1
    return resolved
