"""
Trade helpers: instruction indexes, UI amounts, direction inference,
payload deobfuscation and multi-hop aggregation.
"""

import logging
from typing import Iterable, List, Optional, Sequence, Tuple

from solders.pubkey import Pubkey

from ..constants import (
    ASSOCIATED_TOKEN_PROGRAM_ID,
    TOKEN_2022_PROGRAM_ID,
    TOKEN_PROGRAM_ID,
    TOKENS,
    get_program_by_id,
    is_sol,
    is_stablecoin,
)
from ..models import ClassifiedInstruction, DexInfo, TokenInfo, TradeInfo, TradeType

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Index formatting
# ---------------------------------------------------------------------------

def format_idx(outer_index: int, inner_index: int = -1) -> str:
    if inner_index >= 0:
        return f"{outer_index}-{inner_index}"
    return str(outer_index)


def format_transfer_key(program_id: str, outer_index: int, inner_index: int = -1) -> str:
    return f"{program_id}:{format_idx(outer_index, inner_index)}"


def format_dedupe_key(idx: str, signature: str) -> str:
    return f"{idx}-{signature}"


def parse_idx(idx: str) -> Tuple[int, int]:
    """Split ``"outer"`` or ``"outer-inner"`` into an ordering key."""
    outer, _, inner = idx.partition("-")
    try:
        return int(outer), int(inner) if inner else -1
    except ValueError:
        return 0, -1


# ---------------------------------------------------------------------------
# Amounts and classification
# ---------------------------------------------------------------------------

def convert_to_ui_amount(amount, decimals: int = 9) -> float:
    """Scale a raw integer amount (int or decimal string) by ``10**decimals``."""
    try:
        raw = int(amount)
    except (TypeError, ValueError):
        return 0.0
    if decimals == 0:
        return float(raw)
    return raw / 10 ** decimals


def get_trade_type(in_mint: str, out_mint: str) -> TradeType:
    """
    Label a swap BUY or SELL from its mints.

    SOL or a stablecoin on the input side means the user is buying the
    other token. Stable-to-stable and exotic pairs fall through to SELL.
    """
    if in_mint == TOKENS.SOL:
        return TradeType.BUY
    if out_mint == TOKENS.SOL:
        return TradeType.SELL
    if is_stablecoin(in_mint) or is_sol(in_mint):
        return TradeType.BUY
    return TradeType.SELL


def get_amms(transfer_keys: Iterable[str]) -> List[str]:
    """AMM names for the programs that own a set of transfer-action keys."""
    names: List[str] = []
    for key in transfer_keys:
        program = get_program_by_id(key.split(":", 1)[0])
        if program and program.is_amm and program.name not in names:
            names.append(program.name)
    return names


def get_transfer_token_mint(token1: str, token2: str) -> str:
    if token1 == token2:
        return token1
    if token1 and token1 != TOKENS.SOL:
        return token1
    if token2 and token2 != TOKENS.SOL:
        return token2
    return token1 or token2


# ---------------------------------------------------------------------------
# Associated token accounts
# ---------------------------------------------------------------------------

def find_associated_token_address(owner: str, mint: str,
                                  token_program: str = TOKEN_PROGRAM_ID) -> Optional[str]:
    """Derive the ATA for ``(owner, mint)`` under ``token_program``."""
    try:
        seeds = [
            bytes(Pubkey.from_string(owner)),
            bytes(Pubkey.from_string(token_program)),
            bytes(Pubkey.from_string(mint)),
        ]
        address, _ = Pubkey.find_program_address(seeds, Pubkey.from_string(ASSOCIATED_TOKEN_PROGRAM_ID))
    except ValueError as e:
        logger.debug("ATA derivation failed for %s/%s: %s", owner, mint, e)
        return None
    return str(address)


def get_account_trade_type(user: str, base_mint: str,
                           input_account: str, output_account: str) -> TradeType:
    """
    Infer direction from which side holds the user's ATA for ``base_mint``.

    The base token leaving the user's ATA is a SELL, arriving is a BUY.
    """
    candidates = {
        find_associated_token_address(user, base_mint, TOKEN_PROGRAM_ID),
        find_associated_token_address(user, base_mint, TOKEN_2022_PROGRAM_ID),
    }
    candidates.discard(None)
    if input_account in candidates:
        return TradeType.SELL
    if output_account in candidates:
        return TradeType.BUY
    return TradeType.SWAP


# ---------------------------------------------------------------------------
# Payload deobfuscation
# ---------------------------------------------------------------------------

def deobfuscate(data: bytes, key: bytes) -> bytes:
    """
    Undo a position-masked XOR over 8-byte blocks.

    Block ``i`` is XORed with ``key`` and with the little-endian u16 of ``i``
    repeated to 8 bytes. Applying it twice returns the input.
    """
    out = bytearray(data)
    for block, start in enumerate(range(0, len(out), 8)):
        mask = (block & 0xFFFF).to_bytes(2, "little") * 4
        for j in range(min(8, len(out) - start)):
            out[start + j] ^= key[j] ^ mask[j]
    return bytes(out)


# ---------------------------------------------------------------------------
# Ordering and aggregation
# ---------------------------------------------------------------------------

def sort_trades_by_idx(trades: Sequence[TradeInfo]) -> List[TradeInfo]:
    return sorted(trades, key=lambda t: parse_idx(t.idx))


def get_prev_instruction_by_index(instructions: Sequence[ClassifiedInstruction],
                                  outer_index: int, inner_index: int) -> Optional[ClassifiedInstruction]:
    """Closest instruction executed before ``(outer_index, inner_index)``."""
    position = (outer_index, inner_index)
    earlier = [ix for ix in instructions if (ix.outer_index, ix.inner_index) < position]
    if not earlier:
        return None
    return max(earlier, key=lambda ix: (ix.outer_index, ix.inner_index))


def get_final_swap(trades: Sequence[TradeInfo], dex_info: Optional[DexInfo] = None) -> Optional[TradeInfo]:
    """
    Collapse hops into one logical swap.

    Input is the first hop's input mint and output the last hop's output
    mint. Every hop amount matching either boundary mint is summed, so
    cyclic routes are covered. Pools keep encounter order.
    """
    if not trades:
        return None
    if len(trades) == 1:
        return trades[0]

    ordered = sort_trades_by_idx(trades)
    first, last = ordered[0], ordered[-1]

    input_raw = 0
    output_raw = 0
    pools: List[str] = []
    for trade in ordered:
        if trade.input_token.mint == first.input_token.mint:
            input_raw += int(trade.input_token.amount_raw or 0)
        if trade.output_token.mint == last.output_token.mint:
            output_raw += int(trade.output_token.amount_raw or 0)
        if trade.pool and trade.pool[0] not in pools:
            pools.append(trade.pool[0])

    amm = first.amm
    route = first.route
    if dex_info:
        amm = dex_info.amm or amm
        route = dex_info.route or route

    return TradeInfo(
        type=get_trade_type(first.input_token.mint, last.output_token.mint),
        pool=pools,
        input_token=TokenInfo(
            mint=first.input_token.mint,
            amount=convert_to_ui_amount(input_raw, first.input_token.decimals),
            amount_raw=str(input_raw),
            decimals=first.input_token.decimals,
        ),
        output_token=TokenInfo(
            mint=last.output_token.mint,
            amount=convert_to_ui_amount(output_raw, last.output_token.decimals),
            amount_raw=str(output_raw),
            decimals=last.output_token.decimals,
        ),
        user=first.user,
        program_id=first.program_id,
        amm=amm,
        route=route,
        slot=first.slot,
        timestamp=first.timestamp,
        signature=first.signature,
        idx=first.idx,
        signer=list(first.signer),
    )
