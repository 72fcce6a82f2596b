"""Transaction Adapter: one read-only view over legacy, v0 and wire transactions."""

import base64
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

import base58
from solders.message import MessageV0
from solders.transaction import VersionedTransaction

from ..config import ParseConfig
from ..constants import (
    TOKEN_2022_PROGRAM_ID,
    TOKEN_PROGRAM_ID,
    TOKENS,
    SplTokenInstruction,
    get_program_name,
    get_static_decimals,
)
from ..models import (
    AccountKey,
    BalanceChange,
    CompiledInstruction,
    FlaggedAccountKey,
    Instruction,
    ParsedInstruction,
    PlainAccountKey,
    PoolEvent,
    PoolEventType,
    TokenAmount,
    TransactionStatus,
)
from ..utils.trade import convert_to_ui_amount, find_associated_token_address

logger = logging.getLogger(__name__)

SOL_DECIMALS = 9

# Opcode -> (source, destination, mint) account positions, None where absent
_TOKEN_ACCOUNT_LAYOUTS = {
    SplTokenInstruction.TRANSFER: (0, 1, None),
    SplTokenInstruction.TRANSFER_CHECKED: (0, 2, 1),
    SplTokenInstruction.MINT_TO: (None, 1, 0),
    SplTokenInstruction.MINT_TO_CHECKED: (None, 1, 0),
    SplTokenInstruction.BURN: (0, None, 1),
    SplTokenInstruction.BURN_CHECKED: (0, None, 1),
    SplTokenInstruction.CLOSE_ACCOUNT: (0, 1, None),
}
_CHECKED_OPCODES = {
    SplTokenInstruction.TRANSFER_CHECKED,
    SplTokenInstruction.MINT_TO_CHECKED,
    SplTokenInstruction.BURN_CHECKED,
}


@dataclass
class InnerInstructionSet:
    """Inner instructions executed by the outer instruction at ``index``."""
    index: int
    instructions: List[Instruction] = field(default_factory=list)


@dataclass
class _TokenAccount:
    mint: str
    decimals: int


def _decode_data(data: Any) -> bytes:
    if isinstance(data, (bytes, bytearray)):
        return bytes(data)
    if isinstance(data, list):
        return bytes(data)
    if isinstance(data, str) and data:
        try:
            return base58.b58decode(data)
        except ValueError:
            logger.debug("Instruction data is not base58: %s...", data[:16])
    return b""


def decode_wire_transaction(encoded: str) -> Dict[str, Any]:
    """
    Decode a base64 wire transaction into the ``json`` encoding shape.

    Only the message and signatures are recovered; ``meta`` has to come
    from the RPC response.
    """
    tx = VersionedTransaction.from_bytes(base64.b64decode(encoded))
    msg = tx.message
    keys_field = "staticAccountKeys" if isinstance(msg, MessageV0) else "accountKeys"
    message: Dict[str, Any] = {
        "header": {
            "numRequiredSignatures": msg.header.num_required_signatures,
            "numReadonlySignedAccounts": msg.header.num_readonly_signed_accounts,
            "numReadonlyUnsignedAccounts": msg.header.num_readonly_unsigned_accounts,
        },
        keys_field: [str(key) for key in msg.account_keys],
        "recentBlockhash": str(msg.recent_blockhash),
        "instructions": [
            {
                "programIdIndex": ix.program_id_index,
                "accounts": list(bytes(ix.accounts)),
                "data": bytes(ix.data),
            }
            for ix in msg.instructions
        ],
    }
    if isinstance(msg, MessageV0):
        message["addressTableLookups"] = [
            {
                "accountKey": str(lookup.account_key),
                "writableIndexes": list(bytes(lookup.writable_indexes)),
                "readonlyIndexes": list(bytes(lookup.readonly_indexes)),
            }
            for lookup in msg.address_table_lookups
        ]
    return {"signatures": [str(sig) for sig in tx.signatures], "message": message}


class TransactionAdapter:
    """
    Normalized access to a ``getTransaction`` result.

    Accepts the ``json`` and ``jsonParsed`` encodings, and ``[b64, "base64"]``
    wire transactions. The account table, instruction list and token
    registry are resolved once at construction.
    """

    def __init__(self, tx: Mapping[str, Any], config: Optional[ParseConfig] = None):
        if not isinstance(tx, Mapping):
            raise ValueError("Transaction must be a mapping")
        self.config = config or ParseConfig()
        self.tx = tx

        transaction = tx.get("transaction")
        if isinstance(transaction, list) and len(transaction) == 2 and transaction[1] == "base64":
            transaction = decode_wire_transaction(transaction[0])
        if not isinstance(transaction, Mapping):
            raise ValueError("Transaction has no transaction body")
        message = transaction.get("message")
        if not isinstance(message, Mapping):
            raise ValueError("Transaction has no message")

        self._transaction = transaction
        self._message = message
        self._meta: Optional[Mapping[str, Any]] = tx.get("meta")

        self._key_entries: List[AccountKey] = self._resolve_account_keys()
        self.account_keys: List[str] = self._extract_account_keys()
        self._key_index: Dict[str, int] = {}
        for i, key in enumerate(self.account_keys):
            self._key_index.setdefault(key, i)

        raw_instructions = message.get("compiledInstructions") or message.get("instructions") or []
        self._instructions: List[Instruction] = [
            ix for ix in (self.resolve_instruction(raw) for raw in raw_instructions) if ix is not None
        ]
        self._inner_instructions: List[InnerInstructionSet] = []
        for raw_set in self._meta_list("innerInstructions"):
            resolved = [self.resolve_instruction(raw) for raw in raw_set.get("instructions") or []]
            self._inner_instructions.append(InnerInstructionSet(
                index=int(raw_set.get("index", 0)),
                instructions=[ix for ix in resolved if ix is not None],
            ))

        self._token_accounts: Dict[str, _TokenAccount] = {}
        self._mint_decimals: Dict[str, int] = {}
        self._extract_token_info()

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------

    def _meta_list(self, name: str) -> List[Any]:
        if not self._meta:
            return []
        return list(self._meta.get(name) or [])

    @property
    def is_versioned(self) -> bool:
        """v0 messages carry a header plus ``staticAccountKeys``; legacy ones list ``accountKeys``."""
        return self._message.get("header") is not None and bool(self._message.get("staticAccountKeys"))

    def _resolve_account_keys(self) -> List[AccountKey]:
        if self.is_versioned:
            raw_keys = self._message.get("staticAccountKeys") or []
        else:
            raw_keys = self._message.get("accountKeys") or []
        entries: List[AccountKey] = []
        for raw in raw_keys:
            if isinstance(raw, str):
                entries.append(PlainAccountKey(raw))
            elif isinstance(raw, Mapping) and raw.get("pubkey"):
                entries.append(FlaggedAccountKey(
                    pubkey=raw["pubkey"],
                    signer=bool(raw.get("signer")),
                    writable=bool(raw.get("writable")),
                    source=raw.get("source"),
                ))
        return entries

    def _extract_account_keys(self) -> List[str]:
        keys = [entry.pubkey for entry in self._key_entries]
        # jsonParsed messages already list lookup-table keys inline
        if any(isinstance(e, FlaggedAccountKey) and e.source == "lookupTable" for e in self._key_entries):
            return keys
        loaded = (self._meta or {}).get("loadedAddresses") or {}
        keys.extend(loaded.get("writable") or [])
        keys.extend(loaded.get("readonly") or [])
        return keys

    def resolve_instruction(self, raw: Any) -> Optional[Instruction]:
        """Turn a raw instruction mapping into a compiled or parsed instruction."""
        if not isinstance(raw, Mapping):
            return None

        if "programId" in raw or isinstance(raw.get("parsed"), Mapping):
            program_id = raw.get("programId") or self.get_account_key(raw.get("programIdIndex", -1))
            accounts = [
                acc if isinstance(acc, str) else self.get_account_key(acc)
                for acc in raw.get("accounts") or []
            ]
            parsed = raw.get("parsed") if isinstance(raw.get("parsed"), Mapping) else {}
            return ParsedInstruction(
                program_id=program_id,
                program=raw.get("program", ""),
                accounts=accounts,
                data=_decode_data(raw.get("data")),
                parsed_type=parsed.get("type", "") if parsed else "",
                info=dict(parsed.get("info") or {}) if parsed else {},
            )

        if "programIdIndex" in raw:
            indexes = raw.get("accounts")
            if not indexes:
                indexes = raw.get("accountKeyIndexes") or []
            if indexes and isinstance(indexes[0], str):
                accounts = list(indexes)
            else:
                accounts = [self.get_account_key(i) for i in indexes]
            return CompiledInstruction(
                program_id=self.get_account_key(raw["programIdIndex"]),
                accounts=accounts,
                data=_decode_data(raw.get("data")),
            )

        return None

    def _extract_token_info(self) -> None:
        for balance in self._meta_list("postTokenBalances"):
            mint = balance.get("mint")
            if not mint:
                continue
            account = self.get_account_key(balance.get("accountIndex", -1))
            decimals = int((balance.get("uiTokenAmount") or {}).get("decimals", 0))
            if account and account not in self._token_accounts:
                self._token_accounts[account] = _TokenAccount(mint, decimals)
            self._mint_decimals.setdefault(mint, decimals)

        for ix in self._all_instructions():
            self._extract_from_instruction(ix)

        self._token_accounts.setdefault(TOKENS.SOL, _TokenAccount(TOKENS.SOL, SOL_DECIMALS))
        self._mint_decimals.setdefault(TOKENS.SOL, SOL_DECIMALS)

    def _all_instructions(self):
        yield from self._instructions
        for inner in self._inner_instructions:
            yield from inner.instructions

    def _extract_from_instruction(self, ix: Instruction) -> None:
        if ix.program_id not in (TOKEN_PROGRAM_ID, TOKEN_2022_PROGRAM_ID) or not ix.data:
            return
        try:
            opcode = SplTokenInstruction(ix.data[0])
        except ValueError:
            return
        layout = _TOKEN_ACCOUNT_LAYOUTS.get(opcode)
        if layout is None or len(ix.accounts) < 2:
            return

        accounts = ix.accounts

        def pick(pos: Optional[int]) -> str:
            return accounts[pos] if pos is not None and pos < len(accounts) else ""

        source, destination, mint = (pick(pos) for pos in layout)
        decimals = ix.data[9] if opcode in _CHECKED_OPCODES and len(ix.data) > 9 else 0
        self._set_token_info(source, destination, mint, decimals)

    def _set_token_info(self, source: str, destination: str, mint: str, decimals: int) -> None:
        for account in (source, destination):
            if account and account not in self._token_accounts:
                self._token_accounts[account] = _TokenAccount(mint or TOKENS.SOL, decimals or SOL_DECIMALS)
        if mint and decimals > 0:
            self._mint_decimals.setdefault(mint, decimals)

    # ------------------------------------------------------------------
    # Provenance and status
    # ------------------------------------------------------------------

    @property
    def slot(self) -> int:
        return int(self.tx.get("slot") or 0)

    @property
    def block_time(self) -> int:
        return int(self.tx.get("blockTime") or 0)

    @property
    def signature(self) -> str:
        signatures = self._transaction.get("signatures") or []
        return signatures[0] if signatures else ""

    @property
    def signer(self) -> str:
        return self.account_keys[0] if self.account_keys else ""

    @property
    def signers(self) -> List[str]:
        header = self._message.get("header") or {}
        required = int(header.get("numRequiredSignatures") or 0)
        if 0 < required <= len(self.account_keys):
            return self.account_keys[:required]

        flagged = [e.pubkey for e in self._key_entries if isinstance(e, FlaggedAccountKey) and e.signer]
        if flagged:
            return flagged
        return [self.signer] if self.signer else []

    @property
    def fee(self) -> TokenAmount:
        lamports = int((self._meta or {}).get("fee") or 0)
        return TokenAmount(str(lamports), convert_to_ui_amount(lamports, SOL_DECIMALS), SOL_DECIMALS)

    @property
    def compute_units(self) -> int:
        return int((self._meta or {}).get("computeUnitsConsumed") or 0)

    @property
    def tx_status(self) -> TransactionStatus:
        if self._meta is None:
            return TransactionStatus.UNKNOWN
        if self._meta.get("err") is None:
            return TransactionStatus.SUCCESS
        return TransactionStatus.FAILED

    @property
    def log_messages(self) -> List[str]:
        return self._meta_list("logMessages")

    # ------------------------------------------------------------------
    # Instructions and accounts
    # ------------------------------------------------------------------

    @property
    def instructions(self) -> List[Instruction]:
        return self._instructions

    @property
    def inner_instructions(self) -> List[InnerInstructionSet]:
        return self._inner_instructions

    def get_instruction(self, index: int) -> Optional[Instruction]:
        if 0 <= index < len(self._instructions):
            return self._instructions[index]
        return None

    def get_inner_instruction(self, outer_index: int, inner_index: int) -> Optional[Instruction]:
        for inner in self._inner_instructions:
            if inner.index == outer_index and 0 <= inner_index < len(inner.instructions):
                return inner.instructions[inner_index]
        return None

    def get_account_key(self, index: Any) -> str:
        try:
            index = int(index)
        except (TypeError, ValueError):
            return ""
        if 0 <= index < len(self.account_keys):
            return self.account_keys[index]
        return ""

    def get_account_index(self, address: str) -> int:
        return self._key_index.get(address, -1)

    # ------------------------------------------------------------------
    # Token registry
    # ------------------------------------------------------------------

    def get_token_account_owner(self, account: str) -> str:
        for balance in self._meta_list("postTokenBalances"):
            if self.get_account_key(balance.get("accountIndex", -1)) == account:
                return balance.get("owner") or ""
        return ""

    def get_spl_token_mint(self, account: str) -> str:
        info = self._token_accounts.get(account)
        return info.mint if info else ""

    def unknown_token_accounts(self) -> List[str]:
        """Account keys with no mint resolved from balances or token instructions."""
        return [key for key in self.account_keys if key not in self._token_accounts]

    def register_token_account(self, account: str, mint: str, decimals: int) -> None:
        """Record token-account info resolved outside the transaction."""
        if not account or not mint:
            return
        self._token_accounts.setdefault(account, _TokenAccount(mint, decimals))
        self._mint_decimals.setdefault(mint, decimals)

    def is_supported_token(self, mint: str) -> bool:
        return mint in self._mint_decimals

    def get_token_decimals(self, mint: str) -> int:
        if mint in self._mint_decimals:
            return self._mint_decimals[mint]
        static = get_static_decimals(mint)
        return static if static is not None else 0

    def get_ata_for(self, owner: str, mint: str) -> str:
        """The owner's ATA for ``mint``, preferring one present in the transaction."""
        standard = find_associated_token_address(owner, mint, TOKEN_PROGRAM_ID) or ""
        token_2022 = find_associated_token_address(owner, mint, TOKEN_2022_PROGRAM_ID) or ""
        if token_2022 and token_2022 in self._key_index and standard not in self._key_index:
            return token_2022
        return standard

    # ------------------------------------------------------------------
    # Balances
    # ------------------------------------------------------------------

    def _token_balance(self, name: str, account: str) -> Optional[TokenAmount]:
        if not account:
            return None
        for balance in self._meta_list(name):
            if self.get_account_key(balance.get("accountIndex", -1)) == account:
                return _token_amount(balance.get("uiTokenAmount") or {})
        return None

    def get_token_account_balance(self, account: str) -> Optional[TokenAmount]:
        return self._token_balance("postTokenBalances", account)

    def get_token_account_pre_balance(self, account: str) -> Optional[TokenAmount]:
        return self._token_balance("preTokenBalances", account)

    def _sol_balance(self, name: str, account: str) -> Optional[TokenAmount]:
        balances = self._meta_list(name)
        index = self.get_account_index(account)
        if 0 <= index < len(balances):
            lamports = int(balances[index])
            return TokenAmount(str(lamports), convert_to_ui_amount(lamports, SOL_DECIMALS), SOL_DECIMALS)
        return None

    def get_account_balance(self, account: str) -> Optional[TokenAmount]:
        return self._sol_balance("postBalances", account)

    def get_account_pre_balance(self, account: str) -> Optional[TokenAmount]:
        return self._sol_balance("preBalances", account)

    def sol_balance_changes(self, by_owner: bool = False) -> Dict[str, BalanceChange]:
        """Lamport changes per account, or per token-account owner when ``by_owner``."""
        pre_balances = self._meta_list("preBalances")
        post_balances = self._meta_list("postBalances")
        changes: Dict[str, BalanceChange] = {}

        for i, key in enumerate(self.account_keys):
            account = key
            if by_owner:
                account = self.get_token_account_owner(key) or key
            pre = int(pre_balances[i]) if i < len(pre_balances) else 0
            post = int(post_balances[i]) if i < len(post_balances) else 0
            if post == pre:
                continue
            changes[account] = BalanceChange(
                pre=_lamports(pre),
                post=_lamports(post),
                change=_lamports(post - pre),
            )
        return changes

    def token_balance_changes(self, by_owner: bool = False) -> Dict[str, Dict[str, BalanceChange]]:
        """Token changes as ``{account_or_owner: {mint: change}}``."""
        changes: Dict[str, Dict[str, BalanceChange]] = {}

        def holder(balance: Mapping[str, Any]) -> str:
            key = self.get_account_key(balance.get("accountIndex", -1))
            if by_owner:
                return balance.get("owner") or self.get_token_account_owner(key) or key
            return key

        for balance in self._meta_list("preTokenBalances"):
            mint = balance.get("mint")
            if not mint:
                continue
            pre = _token_amount(balance.get("uiTokenAmount") or {})
            zero = TokenAmount("0", 0.0, pre.decimals)
            change = TokenAmount(str(-int(pre.amount)), -(pre.ui_amount or 0.0), pre.decimals)
            changes.setdefault(holder(balance), {})[mint] = BalanceChange(pre=pre, post=zero, change=change)

        for balance in self._meta_list("postTokenBalances"):
            mint = balance.get("mint")
            if not mint:
                continue
            post = _token_amount(balance.get("uiTokenAmount") or {})
            by_mint = changes.setdefault(holder(balance), {})
            existing = by_mint.get(mint)
            if existing is None:
                pre = TokenAmount("0", 0.0, post.decimals)
                by_mint[mint] = BalanceChange(pre=pre, post=post, change=post)
                continue
            raw = int(post.amount) - int(existing.pre.amount)
            ui = (post.ui_amount or 0.0) - (existing.pre.ui_amount or 0.0)
            existing.post = post
            existing.change = TokenAmount(str(raw), ui, post.decimals)

        for account in list(changes):
            by_mint = changes[account]
            for mint in [m for m, c in by_mint.items() if int(c.change.amount) == 0]:
                del by_mint[mint]
            if not by_mint:
                del changes[account]
        return changes

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def get_pool_event_base(self, event_type: PoolEventType, program_id: str) -> PoolEvent:
        return PoolEvent(
            user=self.signer,
            type=event_type,
            program_id=program_id,
            amm=get_program_name(program_id),
            slot=self.slot,
            timestamp=self.block_time,
            signature=self.signature,
        )


def _token_amount(ui_token_amount: Mapping[str, Any]) -> TokenAmount:
    decimals = int(ui_token_amount.get("decimals") or 0)
    amount = str(ui_token_amount.get("amount") or "0")
    ui_amount = ui_token_amount.get("uiAmount")
    if ui_amount is None:
        ui_amount = convert_to_ui_amount(amount, decimals)
    return TokenAmount(amount, float(ui_amount), decimals)


def _lamports(value: int) -> TokenAmount:
    return TokenAmount(str(value), convert_to_ui_amount(value, SOL_DECIMALS), SOL_DECIMALS)
