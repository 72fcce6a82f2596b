"""Decoding and trade helpers."""

from .binary_cursor import BinaryCursor, CursorPool, cursor
from .trade import (
    convert_to_ui_amount,
    deobfuscate,
    find_associated_token_address,
    format_dedupe_key,
    format_idx,
    format_transfer_key,
    get_account_trade_type,
    get_amms,
    get_final_swap,
    get_prev_instruction_by_index,
    get_trade_type,
    get_transfer_token_mint,
    parse_idx,
    sort_trades_by_idx,
)

__all__ = [
    "BinaryCursor",
    "CursorPool",
    "cursor",
    "convert_to_ui_amount",
    "deobfuscate",
    "find_associated_token_address",
    "format_dedupe_key",
    "format_idx",
    "format_transfer_key",
    "get_account_trade_type",
    "get_amms",
    "get_final_swap",
    "get_prev_instruction_by_index",
    "get_trade_type",
    "get_transfer_token_mint",
    "parse_idx",
    "sort_trades_by_idx",
]
