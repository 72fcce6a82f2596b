"""
Data models for parsed transactions.

Every record serializes through ``to_dict()`` to the camelCase JSON shape
consumers of Solana RPC data expect. ``None`` fields are omitted.
"""

from dataclasses import dataclass, field, fields, is_dataclass
from enum import Enum, Flag
from typing import Any, Dict, List, Optional, Union


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def _serialize(value: Any) -> Any:
    if is_dataclass(value):
        return value.to_dict()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (list, tuple)):
        return [_serialize(v) for v in value]
    if isinstance(value, dict):
        return {k: _serialize(v) for k, v in value.items()}
    return value


class _Record:
    """Mixin giving dataclasses a camelCase ``to_dict``."""

    def to_dict(self) -> Dict[str, Any]:
        out = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is None:
                continue
            out[_camel(f.name)] = _serialize(value)
        return out


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class TradeType(str, Enum):
    BUY = "BUY"
    SELL = "SELL"
    SWAP = "SWAP"
    CREATE = "CREATE"
    MIGRATE = "MIGRATE"
    COMPLETE = "COMPLETE"
    ADD = "ADD"
    REMOVE = "REMOVE"
    LOCK = "LOCK"
    BURN = "BURN"


class PoolEventType(str, Enum):
    CREATE = "CREATE"
    ADD = "ADD"
    REMOVE = "REMOVE"


class TransactionStatus(str, Enum):
    UNKNOWN = "unknown"
    SUCCESS = "success"
    FAILED = "failed"


class ExtraAction(Flag):
    """Token actions collected in addition to plain transfers."""
    NONE = 0
    MINT_TO = 1
    BURN = 2
    MINT_TO_CHECKED = 4
    BURN_CHECKED = 8
    ALL = 15

    def type_names(self) -> List[str]:
        return [name for action, name in _EXTRA_ACTION_NAMES if action in self]


_EXTRA_ACTION_NAMES = (
    (ExtraAction.MINT_TO, "mintTo"),
    (ExtraAction.BURN, "burn"),
    (ExtraAction.MINT_TO_CHECKED, "mintToChecked"),
    (ExtraAction.BURN_CHECKED, "burnChecked"),
)


# ---------------------------------------------------------------------------
# Account keys and instructions
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PlainAccountKey:
    """Account key given as a bare base58 string."""
    pubkey: str


@dataclass(frozen=True)
class FlaggedAccountKey:
    """Account key from a jsonParsed message, with its flags."""
    pubkey: str
    signer: bool = False
    writable: bool = False
    source: Optional[str] = None


AccountKey = Union[PlainAccountKey, FlaggedAccountKey]


@dataclass
class CompiledInstruction:
    """Index-addressed instruction with base58-decoded data."""
    program_id: str
    accounts: List[str] = field(default_factory=list)
    data: bytes = b""


@dataclass
class ParsedInstruction:
    """Instruction pre-parsed by the RPC node."""
    program_id: str
    program: str = ""
    accounts: List[str] = field(default_factory=list)
    data: bytes = b""
    parsed_type: str = ""
    info: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_parsed(self) -> bool:
        return bool(self.parsed_type)


Instruction = Union[CompiledInstruction, ParsedInstruction]


@dataclass
class ClassifiedInstruction:
    instruction: Instruction
    program_id: str
    outer_index: int
    inner_index: int = -1

    @property
    def idx(self) -> str:
        if self.inner_index >= 0:
            return f"{self.outer_index}-{self.inner_index}"
        return str(self.outer_index)

    @property
    def data(self) -> bytes:
        return self.instruction.data

    @property
    def accounts(self) -> List[str]:
        return self.instruction.accounts


# ---------------------------------------------------------------------------
# Amounts and transfers
# ---------------------------------------------------------------------------

@dataclass
class TokenAmount(_Record):
    amount: str
    ui_amount: Optional[float] = None
    decimals: int = 0

    def to_dict(self) -> Dict[str, Any]:
        # uiAmount is kept even when null, as the RPC does
        return {"amount": self.amount, "uiAmount": self.ui_amount, "decimals": self.decimals}


@dataclass
class BalanceChange(_Record):
    pre: TokenAmount
    post: TokenAmount
    change: TokenAmount


@dataclass
class TransferDataInfo(_Record):
    destination: str
    mint: str
    source: str
    token_amount: TokenAmount
    authority: Optional[str] = None
    destination_owner: Optional[str] = None
    source_balance: Optional[TokenAmount] = None
    source_pre_balance: Optional[TokenAmount] = None
    destination_balance: Optional[TokenAmount] = None
    destination_pre_balance: Optional[TokenAmount] = None
    sol_balance_change: Optional[str] = None


@dataclass
class TransferData(_Record):
    type: str
    program_id: str
    info: TransferDataInfo
    idx: str
    timestamp: int = 0
    signature: str = ""
    is_fee: bool = False


@dataclass
class TokenInfo(_Record):
    mint: str
    amount: float = 0.0
    amount_raw: str = "0"
    decimals: int = 0
    authority: Optional[str] = None
    destination: Optional[str] = None
    destination_owner: Optional[str] = None
    destination_balance: Optional[TokenAmount] = None
    destination_pre_balance: Optional[TokenAmount] = None
    source: Optional[str] = None
    source_balance: Optional[TokenAmount] = None
    source_pre_balance: Optional[TokenAmount] = None
    balance_change: Optional[str] = None


@dataclass
class FeeInfo(_Record):
    mint: str
    amount: float
    amount_raw: str
    decimals: int
    dex: Optional[str] = None
    type: Optional[str] = None
    recipient: Optional[str] = None


# ---------------------------------------------------------------------------
# Trades and events
# ---------------------------------------------------------------------------

@dataclass
class DexInfo(_Record):
    program_id: str = ""
    amm: str = ""
    route: str = ""


@dataclass
class TradeInfo(_Record):
    type: TradeType
    input_token: TokenInfo
    output_token: TokenInfo
    user: str = ""
    pool: List[str] = field(default_factory=list)
    slippage_bps: Optional[int] = None
    fee: Optional[FeeInfo] = None
    fees: List[FeeInfo] = field(default_factory=list)
    program_id: str = ""
    amm: str = ""
    amms: List[str] = field(default_factory=list)
    route: str = ""
    slot: int = 0
    timestamp: int = 0
    signature: str = ""
    idx: str = ""
    signer: List[str] = field(default_factory=list)


@dataclass
class PoolEvent(_Record):
    user: str
    type: PoolEventType
    program_id: str = ""
    amm: str = ""
    slot: int = 0
    timestamp: int = 0
    signature: str = ""
    idx: str = ""
    signer: List[str] = field(default_factory=list)
    pool_id: str = ""
    config: Optional[str] = None
    pool_lp_mint: Optional[str] = None
    token0_mint: Optional[str] = None
    token0_amount: Optional[float] = None
    token0_amount_raw: Optional[str] = None
    token0_balance_change: Optional[str] = None
    token0_decimals: Optional[int] = None
    token1_mint: Optional[str] = None
    token1_amount: Optional[float] = None
    token1_amount_raw: Optional[str] = None
    token1_balance_change: Optional[str] = None
    token1_decimals: Optional[int] = None
    lp_amount: Optional[float] = None
    lp_amount_raw: Optional[str] = None


@dataclass
class MemeEvent(_Record):
    type: TradeType
    timestamp: int = 0
    idx: str = ""
    slot: int = 0
    signature: str = ""
    user: str = ""
    base_mint: str = ""
    quote_mint: str = ""
    input_token: Optional[TokenInfo] = None
    output_token: Optional[TokenInfo] = None
    name: Optional[str] = None
    symbol: Optional[str] = None
    uri: Optional[str] = None
    decimals: Optional[int] = None
    total_supply: Optional[float] = None
    fee: Optional[float] = None
    protocol_fee: Optional[float] = None
    platform_fee: Optional[float] = None
    share_fee: Optional[float] = None
    creator_fee: Optional[float] = None
    protocol: Optional[str] = None
    platform_config: Optional[str] = None
    creator: Optional[str] = None
    bonding_curve: Optional[str] = None
    pool: Optional[str] = None
    pool_dex: Optional[str] = None
    pool_a_reserve: Optional[float] = None
    pool_b_reserve: Optional[float] = None
    pool_fee_rate: Optional[float] = None


@dataclass
class AltEvent(_Record):
    type: str
    alt_account: str
    alt_authority: str = ""
    recipient: Optional[str] = None
    payer_account: Optional[str] = None
    new_addresses: Optional[List[str]] = None
    recent_slot: Optional[int] = None
    idx: str = ""


# ---------------------------------------------------------------------------
# Parse result
# ---------------------------------------------------------------------------

@dataclass
class ParseResult(_Record):
    """Everything extracted from one transaction."""
    state: bool = True
    fee: TokenAmount = field(default_factory=lambda: TokenAmount("0", 0.0, 9))
    aggregate_trade: Optional[TradeInfo] = None
    trades: List[TradeInfo] = field(default_factory=list)
    liquidities: List[PoolEvent] = field(default_factory=list)
    transfers: List[TransferData] = field(default_factory=list)
    sol_balance_change: Optional[BalanceChange] = None
    token_balance_change: Optional[Dict[str, BalanceChange]] = None
    meme_events: List[MemeEvent] = field(default_factory=list)
    alt_events: List[AltEvent] = field(default_factory=list)
    slot: int = 0
    timestamp: int = 0
    signature: str = ""
    signer: List[str] = field(default_factory=list)
    compute_units: int = 0
    tx_status: TransactionStatus = TransactionStatus.UNKNOWN
    msg: Optional[str] = None

    @property
    def is_arbitrage(self) -> bool:
        trade = self.aggregate_trade
        return bool(trade and trade.input_token.mint == trade.output_token.mint)
