"""
Transfer Classifier.

A single pass over the transaction that turns token and SOL movements into
``TransferData`` events, grouped under the program instruction that caused
them. Keys are ``"<programId>:<outer>[-<inner>]"``; top-level transfers
also land in the ``"transfer"`` bucket.
"""

import logging
import struct
from typing import Any, Dict, List, Mapping, Optional

from ..constants import (
    SKIP_PROGRAM_IDS,
    SYSTEM_PROGRAM_ID,
    TOKEN_2022_PROGRAM_ID,
    TOKEN_PROGRAM_ID,
    TOKENS,
    VAULT_PROGRAM_IDS,
    SplTokenInstruction,
    SystemInstruction,
    get_static_decimals,
    is_fee_account,
    is_system_program,
)
from ..models import (
    ExtraAction,
    Instruction,
    ParsedInstruction,
    TokenAmount,
    TransferData,
    TransferDataInfo,
)
from ..utils.trade import convert_to_ui_amount, format_idx, format_transfer_key
from .adapter import SOL_DECIMALS, TransactionAdapter

logger = logging.getLogger(__name__)

TOKEN_PROGRAMS = (TOKEN_PROGRAM_ID, TOKEN_2022_PROGRAM_ID)
TRANSFER_BUCKET = "transfer"

_EXTRA_OPCODES = {
    "mintTo": SplTokenInstruction.MINT_TO,
    "mintToChecked": SplTokenInstruction.MINT_TO_CHECKED,
    "burn": SplTokenInstruction.BURN,
    "burnChecked": SplTokenInstruction.BURN_CHECKED,
}


def is_ignored_program(program_id: str) -> bool:
    """Programs whose inner transfers stay with the enclosing group."""
    return program_id in SKIP_PROGRAM_IDS or program_id in VAULT_PROGRAM_IDS


def get_transfer_actions(adapter: TransactionAdapter,
                         extra: ExtraAction = ExtraAction.NONE) -> Dict[str, List[TransferData]]:
    extra_types = extra.type_names()
    actions: Dict[str, List[TransferData]] = {}

    for inner_set in adapter.inner_instructions:
        outer_index = inner_set.index
        outer = adapter.get_instruction(outer_index)
        if outer is None or is_system_program(outer.program_id):
            continue
        group_key = format_transfer_key(outer.program_id, outer_index)

        for inner_index, ix in enumerate(inner_set.instructions):
            if not is_system_program(ix.program_id) and not is_ignored_program(ix.program_id):
                group_key = format_transfer_key(ix.program_id, outer_index, inner_index)
                continue

            transfer = parse_instruction_action(adapter, ix, format_idx(outer_index, inner_index), extra_types)
            if transfer is None:
                continue
            if is_fee_account(transfer.info.destination) or is_fee_account(transfer.info.destination_owner or ""):
                transfer.is_fee = True
            actions.setdefault(group_key, []).append(transfer)

    for outer_index, ix in enumerate(adapter.instructions):
        transfer = parse_instruction_action(adapter, ix, str(outer_index), extra_types)
        if transfer is not None:
            actions.setdefault(TRANSFER_BUCKET, []).append(transfer)

    return actions


def parse_instruction_action(adapter: TransactionAdapter, ix: Instruction, idx: str,
                             extra_types: List[str]) -> Optional[TransferData]:
    if isinstance(ix, ParsedInstruction) and ix.is_parsed:
        return _parse_parsed_action(adapter, ix, idx, extra_types)
    return _parse_compiled_action(adapter, ix, idx, extra_types)


# ---------------------------------------------------------------------------
# jsonParsed instructions
# ---------------------------------------------------------------------------

def _parse_parsed_action(adapter: TransactionAdapter, ix: ParsedInstruction, idx: str,
                         extra_types: List[str]) -> Optional[TransferData]:
    kind = ix.parsed_type
    if ix.program == "spl-token" and ix.program_id in TOKEN_PROGRAMS and kind == "transfer":
        return _process_parsed_transfer(adapter, ix, idx)
    if ix.program == "system" and ix.program_id == SYSTEM_PROGRAM_ID and kind == "transfer":
        return _process_parsed_native_transfer(adapter, ix, idx)
    if ix.program_id in TOKEN_PROGRAMS and "transferChecked" in kind:
        return _process_parsed_transfer_checked(adapter, ix, idx)
    if ix.program == "spl-token" and ix.program_id in TOKEN_PROGRAMS and kind in extra_types:
        return _process_parsed_extra(adapter, ix, idx, kind)
    return None


def _info_str(info: Mapping[str, Any], key: str) -> str:
    value = info.get(key)
    return "" if value is None else str(value)


def _resolve_mint(adapter: TransactionAdapter, destination: str, source: str) -> str:
    return adapter.get_spl_token_mint(destination) or adapter.get_spl_token_mint(source)


def _resolve_decimals(adapter: TransactionAdapter, mint: str) -> int:
    decimals = adapter.get_token_decimals(mint)
    if decimals == 0:
        decimals = get_static_decimals(mint) or 0
    return decimals


def _process_parsed_transfer(adapter, ix, idx):
    info = ix.info
    source = _info_str(info, "source")
    destination = _info_str(info, "destination")
    mint = _resolve_mint(adapter, destination, source)
    if not mint:
        return None
    decimals = _resolve_decimals(adapter, mint)
    return _token_transfer(adapter, "transfer", ix.program_id, idx, source, destination, mint,
                           _info_str(info, "amount") or "0", decimals, _info_str(info, "authority"))


def _process_parsed_native_transfer(adapter, ix, idx):
    info = ix.info
    return _native_transfer(adapter, ix.program_id, idx, _info_str(info, "source"),
                            _info_str(info, "destination"), _info_str(info, "lamports") or "0")


def _process_parsed_transfer_checked(adapter, ix, idx):
    info = ix.info
    source = _info_str(info, "source")
    destination = _info_str(info, "destination")
    mint = _info_str(info, "mint")
    token_amount = info.get("tokenAmount")
    if isinstance(token_amount, Mapping):
        decimals = int(token_amount.get("decimals") or 0)
        amount = _info_str(token_amount, "amount") or "0"
        ui_amount = token_amount.get("uiAmount")
    else:
        decimals = adapter.get_token_decimals(mint)
        amount = _info_str(info, "amount") or "0"
        ui_amount = None
    transfer = _token_transfer(adapter, "transferChecked", ix.program_id, idx, source, destination, mint,
                               amount, decimals, _info_str(info, "authority"))
    if ui_amount is not None:
        transfer.info.token_amount.ui_amount = float(ui_amount)
    return transfer


def _process_parsed_extra(adapter, ix, idx, kind):
    info = ix.info
    source = _info_str(info, "source") or _info_str(info, "account") if kind.startswith("burn") else ""
    destination = _info_str(info, "destination") or _info_str(info, "account") if kind.startswith("mint") else ""
    authority = _info_str(info, "authority") or _info_str(info, "mintAuthority")
    mint = _info_str(info, "mint") or adapter.get_spl_token_mint(destination)
    if not mint:
        return None
    token_amount = info.get("tokenAmount")
    amount = _info_str(token_amount, "amount") if isinstance(token_amount, Mapping) else _info_str(info, "amount")
    return _token_transfer(adapter, kind, ix.program_id, idx, source, destination, mint,
                           amount or "0", adapter.get_token_decimals(mint), authority)


# ---------------------------------------------------------------------------
# Compiled instructions
# ---------------------------------------------------------------------------

def _parse_compiled_action(adapter: TransactionAdapter, ix: Instruction, idx: str,
                           extra_types: List[str]) -> Optional[TransferData]:
    data = ix.data
    if not data:
        return None

    if ix.program_id in TOKEN_PROGRAMS:
        opcode = data[0]
        if opcode == SplTokenInstruction.TRANSFER:
            return _process_compiled_transfer(adapter, ix, idx)
        if opcode == SplTokenInstruction.TRANSFER_CHECKED:
            return _process_compiled_transfer_checked(adapter, ix, idx)
        for kind in extra_types:
            if opcode == _EXTRA_OPCODES[kind]:
                return _process_compiled_extra(adapter, ix, idx, kind)
        return None

    if ix.program_id == SYSTEM_PROGRAM_ID and len(data) >= 4:
        if struct.unpack_from("<I", data, 0)[0] == SystemInstruction.TRANSFER:
            return _process_compiled_native_transfer(adapter, ix, idx)
    return None


def _read_amount(data: bytes) -> int:
    return struct.unpack_from("<Q", data, 1)[0]


def _process_compiled_transfer(adapter, ix, idx):
    if len(ix.data) < 9 or len(ix.accounts) < 3:
        return None
    source, destination, authority = ix.accounts[:3]
    mint = _resolve_mint(adapter, destination, source)
    if not mint:
        return None
    return _token_transfer(adapter, "transfer", ix.program_id, idx, source, destination, mint,
                           str(_read_amount(ix.data)), adapter.get_token_decimals(mint), authority)


def _process_compiled_transfer_checked(adapter, ix, idx):
    if len(ix.data) < 10 or len(ix.accounts) < 4:
        return None
    source, mint, destination, authority = ix.accounts[:4]
    return _token_transfer(adapter, "transferChecked", ix.program_id, idx, source, destination, mint,
                           str(_read_amount(ix.data)), ix.data[9], authority)


def _process_compiled_native_transfer(adapter, ix, idx):
    if len(ix.data) < 12 or len(ix.accounts) < 2:
        return None
    lamports = struct.unpack_from("<Q", ix.data, 4)[0]
    return _native_transfer(adapter, ix.program_id, idx, ix.accounts[0], ix.accounts[1], str(lamports))


def _process_compiled_extra(adapter, ix, idx, kind):
    data, accounts = ix.data, ix.accounts
    if len(data) < 9 or len(accounts) < 3:
        return None
    checked = kind.endswith("Checked")
    if checked and len(data) < 10:
        return None

    source = destination = ""
    if kind.startswith("mint"):
        mint, destination, authority = accounts[:3]
    else:
        source, mint, authority = accounts[:3]

    decimals = data[9] if checked else 0
    if decimals == 0:
        decimals = adapter.get_token_decimals(mint)
    return _token_transfer(adapter, kind, ix.program_id, idx, source, destination, mint,
                           str(_read_amount(data)), decimals, authority)


# ---------------------------------------------------------------------------
# Event construction
# ---------------------------------------------------------------------------

def _token_transfer(adapter: TransactionAdapter, kind: str, program_id: str, idx: str,
                    source: str, destination: str, mint: str, amount: str, decimals: int,
                    authority: str = "") -> TransferData:
    info = TransferDataInfo(
        destination=destination,
        mint=mint,
        source=source,
        token_amount=TokenAmount(amount, convert_to_ui_amount(amount, decimals), decimals),
        authority=authority or None,
        destination_owner=adapter.get_token_account_owner(destination) or None,
        source_balance=adapter.get_token_account_balance(source),
        source_pre_balance=adapter.get_token_account_pre_balance(source),
        destination_balance=adapter.get_token_account_balance(destination),
        destination_pre_balance=adapter.get_token_account_pre_balance(destination),
    )
    return TransferData(
        type=kind,
        program_id=program_id,
        info=info,
        idx=idx,
        timestamp=adapter.block_time,
        signature=adapter.signature,
    )


def _native_transfer(adapter: TransactionAdapter, program_id: str, idx: str,
                     source: str, destination: str, lamports: str) -> TransferData:
    info = TransferDataInfo(
        destination=destination,
        mint=TOKENS.SOL,
        source=source,
        token_amount=TokenAmount(lamports, convert_to_ui_amount(lamports, SOL_DECIMALS), SOL_DECIMALS),
        destination_owner=adapter.get_token_account_owner(destination) or None,
        source_balance=adapter.get_account_balance(source),
        source_pre_balance=adapter.get_account_pre_balance(source),
        destination_balance=adapter.get_account_balance(destination),
        destination_pre_balance=adapter.get_account_pre_balance(destination),
    )
    return TransferData(
        type="transfer",
        program_id=program_id,
        info=info,
        idx=idx,
        timestamp=adapter.block_time,
        signature=adapter.signature,
    )
