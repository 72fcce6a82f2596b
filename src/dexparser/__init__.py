"""Solana DEX transaction parser: trades, liquidity events, transfers and launch events."""

from .config import ParseConfig, ParseType, RpcConfig
from .dex_parser import DexParser
from .models import ParseResult, PoolEvent, TradeInfo, TransferData

__version__ = "0.1.0"

__all__ = [
    "DexParser",
    "ParseConfig",
    "ParseType",
    "RpcConfig",
    "ParseResult",
    "PoolEvent",
    "TradeInfo",
    "TransferData",
]
