"""
Parser configuration.

``ParseConfig`` controls which programs and accounts are parsed and how
trades are reported. ``RpcConfig`` holds the endpoint used by the fetchers
and the CLI.
"""

import os
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .fetchers import AltsFetcher, PoolInfoFetcher, TokenAccountsFetcher


MAINNET_RPC = "https://api.mainnet-beta.solana.com"
RPC_URL_ENV = "DEXPARSER_RPC_URL"


@dataclass
class ParseType:
    """Which kinds of records a parse returns."""
    aggregate_trade: bool = False
    trade: bool = False
    liquidity: bool = False
    transfer: bool = False
    meme_event: bool = False
    alt_event: bool = False

    @classmethod
    def parse_all(cls) -> "ParseType":
        return cls(True, True, True, True, True, True)

    @classmethod
    def parse_trades_only(cls) -> "ParseType":
        return cls(aggregate_trade=True, trade=True)

    @classmethod
    def parse_liquidity_only(cls) -> "ParseType":
        return cls(liquidity=True)

    @property
    def is_set(self) -> bool:
        return any((self.aggregate_trade, self.trade, self.liquidity,
                    self.transfer, self.meme_event, self.alt_event))


@dataclass
class ParseConfig:
    """Configuration for a single parse."""
    parse_type: ParseType = None
    # Fall back to transfer correlation for programs without a decoder
    try_unknown_dex: bool = True
    # Only parse transactions touching these programs
    program_ids: list[str] = None
    ignore_program_ids: list[str] = None
    account_include: list[str] = None
    account_exclude: list[str] = None
    # Re-raise container-level failures instead of returning state=False
    throw_error: bool = False
    # Report the merged route instead of every hop
    aggregate_trades: bool = True
    alts_fetcher: Optional["AltsFetcher"] = None
    token_accounts_fetcher: Optional["TokenAccountsFetcher"] = None
    pool_info_fetcher: Optional["PoolInfoFetcher"] = None

    def __post_init__(self):
        self.parse_type = self.parse_type or ParseType.parse_all()
        self.program_ids = self.program_ids or []
        self.ignore_program_ids = self.ignore_program_ids or []
        self.account_include = self.account_include or []
        self.account_exclude = self.account_exclude or []

    @classmethod
    def trades_only(cls, **kwargs) -> "ParseConfig":
        return cls(parse_type=ParseType.parse_trades_only(), **kwargs)

    def effective_parse_type(self) -> ParseType:
        if self.parse_type.is_set:
            return self.parse_type
        return ParseType.parse_all()

    def should_aggregate(self) -> bool:
        return self.aggregate_trades or self.effective_parse_type().aggregate_trade


@dataclass
class RpcConfig:
    """JSON-RPC endpoint settings."""
    rpc_url: str = None
    timeout: float = 30.0
    commitment: str = "confirmed"

    def __post_init__(self):
        self.rpc_url = self.rpc_url or os.environ.get(RPC_URL_ENV) or MAINNET_RPC
