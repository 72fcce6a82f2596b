"""
Pytest fixtures for dexparser tests.

``TxBuilder`` assembles ``getTransaction`` results in the ``json`` encoding:
an account table, compiled outer and inner instructions, lamport balances
and token balances.
"""
import struct
from typing import Dict, List, Optional

import base58
import pytest

from dexparser.constants import SYSTEM_PROGRAM_ID, TOKEN_PROGRAM_ID, TOKENS
from dexparser.core import InstructionClassifier, TransactionAdapter, TransactionUtils
from dexparser.models import ExtraAction


def b58(data: bytes) -> str:
    return base58.b58encode(data).decode()


def raw(address: str) -> bytes:
    return base58.b58decode(address)


def key(n: int) -> str:
    """Deterministic valid pubkey."""
    return b58(bytes([n]) * 32)


USER = key(1)
POOL = key(2)
USER_USDC = key(3)
USER_WSOL = key(4)
POOL_USDC = key(5)
POOL_WSOL = key(6)
MEME_MINT = key(7)
UNKNOWN_DEX = key(8)


def spl_transfer_data(amount: int) -> bytes:
    return bytes([3]) + struct.pack("<Q", amount)


def spl_transfer_checked_data(amount: int, decimals: int) -> bytes:
    return bytes([12]) + struct.pack("<Q", amount) + bytes([decimals])


def system_transfer_data(lamports: int) -> bytes:
    return struct.pack("<IQ", 2, lamports)


class TxBuilder:
    """Incrementally build a legacy-message transaction."""

    def __init__(self, signer: str = USER, signature: str = "TestSig111"):
        self.signature = signature
        self.keys: List[str] = []
        self.instructions: List[dict] = []
        self.inner: Dict[int, List[dict]] = {}
        self.pre_balances: Dict[str, int] = {}
        self.post_balances: Dict[str, int] = {}
        self.pre_tokens: List[dict] = []
        self.post_tokens: List[dict] = []
        self.loaded: Optional[dict] = None
        self.index(signer)

    def index(self, account: str) -> int:
        if account not in self.keys:
            self.keys.append(account)
        return self.keys.index(account)

    def _compile(self, program: str, accounts: List[str], data: bytes) -> dict:
        return {
            "programIdIndex": self.index(program),
            "accounts": [self.index(a) for a in accounts],
            "data": b58(data),
        }

    def add_instruction(self, program: str, accounts: List[str], data: bytes = b"") -> int:
        self.instructions.append(self._compile(program, accounts, data))
        return len(self.instructions) - 1

    def add_inner(self, outer_index: int, program: str, accounts: List[str], data: bytes = b"") -> int:
        group = self.inner.setdefault(outer_index, [])
        group.append(self._compile(program, accounts, data))
        return len(group) - 1

    def add_spl_transfer(self, outer_index: int, source: str, destination: str,
                         authority: str, amount: int) -> int:
        return self.add_inner(outer_index, TOKEN_PROGRAM_ID, [source, destination, authority],
                              spl_transfer_data(amount))

    def add_system_transfer(self, outer_index: int, source: str, destination: str, lamports: int) -> int:
        return self.add_inner(outer_index, SYSTEM_PROGRAM_ID, [source, destination],
                              system_transfer_data(lamports))

    def sol_balance(self, account: str, pre: int, post: int) -> "TxBuilder":
        self.index(account)
        self.pre_balances[account] = pre
        self.post_balances[account] = post
        return self

    def token_balance(self, account: str, mint: str, owner: str, decimals: int,
                      pre: Optional[int] = None, post: Optional[int] = None) -> "TxBuilder":
        index = self.index(account)
        for amount, target in ((pre, self.pre_tokens), (post, self.post_tokens)):
            if amount is None:
                continue
            target.append({
                "accountIndex": index,
                "mint": mint,
                "owner": owner,
                "uiTokenAmount": {
                    "amount": str(amount),
                    "decimals": decimals,
                    "uiAmount": amount / 10 ** decimals,
                },
            })
        return self

    def build(self, fee: int = 5000, slot: int = 300_000_000, block_time: int = 1_700_000_000,
              err: Optional[dict] = None) -> dict:
        meta = {
            "err": err,
            "fee": fee,
            "computeUnitsConsumed": 42_000,
            "preBalances": [self.pre_balances.get(k, 0) for k in self.keys],
            "postBalances": [self.post_balances.get(k, 0) for k in self.keys],
            "preTokenBalances": self.pre_tokens,
            "postTokenBalances": self.post_tokens,
            "innerInstructions": [
                {"index": index, "instructions": instructions}
                for index, instructions in sorted(self.inner.items())
            ],
            "logMessages": [],
        }
        if self.loaded is not None:
            meta["loadedAddresses"] = self.loaded
        return {
            "slot": slot,
            "blockTime": block_time,
            "transaction": {
                "signatures": [self.signature],
                "message": {
                    "header": {
                        "numRequiredSignatures": 1,
                        "numReadonlySignedAccounts": 0,
                        "numReadonlyUnsignedAccounts": 0,
                    },
                    "accountKeys": list(self.keys),
                    "recentBlockhash": key(99),
                    "instructions": self.instructions,
                },
            },
            "meta": meta,
        }


@pytest.fixture
def tx_builder():
    return TxBuilder


@pytest.fixture
def swap_tx():
    """
    USDC -> SOL swap on an undecoded program.

    The user sends 1 USDC to the pool and receives 0.5 WSOL back, both as
    inner SPL transfers under the program's outer instruction.
    """
    builder = TxBuilder()
    outer = builder.add_instruction(UNKNOWN_DEX, [USER, POOL, USER_USDC, USER_WSOL, POOL_USDC, POOL_WSOL])
    builder.add_spl_transfer(outer, USER_USDC, POOL_USDC, USER, 1_000_000)
    builder.add_spl_transfer(outer, POOL_WSOL, USER_WSOL, POOL, 500_000_000)
    builder.sol_balance(USER, 2_000_000_000, 1_999_995_000)
    builder.token_balance(USER_USDC, TOKENS.USDC, USER, 6, pre=5_000_000, post=4_000_000)
    builder.token_balance(USER_WSOL, TOKENS.SOL, USER, 9, pre=0, post=500_000_000)
    builder.token_balance(POOL_USDC, TOKENS.USDC, POOL, 6, pre=10_000_000, post=11_000_000)
    builder.token_balance(POOL_WSOL, TOKENS.SOL, POOL, 9, pre=9_000_000_000, post=8_500_000_000)
    return builder.build()


def build_decoder(cls, tx, program_id):
    """Decoder ``cls`` over the instructions of ``program_id`` in ``tx``."""
    adapter = TransactionAdapter(tx)
    utils = TransactionUtils(adapter)
    classifier = InstructionClassifier(adapter)
    return cls(
        adapter,
        utils.get_dex_info(classifier),
        utils.get_transfer_actions(ExtraAction.ALL),
        classifier.get_instructions(program_id),
        utils,
    )
