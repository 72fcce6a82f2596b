"""Unit tests for the transfer classifier"""
import struct

from dexparser.constants import SYSTEM_PROGRAM_ID, TOKEN_PROGRAM_ID, TOKENS
from dexparser.core import TRANSFER_BUCKET, TransactionAdapter, get_transfer_actions
from dexparser.models import ExtraAction

from conftest import (
    POOL,
    POOL_USDC,
    UNKNOWN_DEX,
    USER,
    USER_USDC,
    TxBuilder,
    key,
    system_transfer_data,
)

JITO_TIP = "96gYZGLnJYVFmbjzopPSU6QiEV5fGqZNyN9nmNhvrZU5"
ROUTER = key(20)


def _usdc_builder() -> TxBuilder:
    builder = TxBuilder()
    builder.token_balance(USER_USDC, TOKENS.USDC, USER, 6, pre=5_000_000, post=4_000_000)
    builder.token_balance(POOL_USDC, TOKENS.USDC, POOL, 6, pre=0, post=1_000_000)
    return builder


class TestTopLevelTransfers:
    def test_system_transfer_goes_to_transfer_bucket(self):
        builder = TxBuilder()
        builder.add_instruction(SYSTEM_PROGRAM_ID, [USER, POOL], system_transfer_data(1_500_000_000))
        builder.sol_balance(USER, 3_000_000_000, 1_499_995_000)
        builder.sol_balance(POOL, 0, 1_500_000_000)

        actions = get_transfer_actions(TransactionAdapter(builder.build()))
        assert list(actions) == [TRANSFER_BUCKET]
        transfer = actions[TRANSFER_BUCKET][0]
        assert transfer.type == "transfer"
        assert transfer.idx == "0"
        assert transfer.info.mint == TOKENS.SOL
        assert transfer.info.token_amount.amount == "1500000000"
        assert transfer.info.token_amount.ui_amount == 1.5
        assert transfer.info.source_pre_balance.amount == "3000000000"
        assert transfer.info.destination_balance.amount == "1500000000"

    def test_non_transfer_system_instruction_is_ignored(self):
        builder = TxBuilder()
        # CreateAccount
        builder.add_instruction(SYSTEM_PROGRAM_ID, [USER, POOL], struct.pack("<IQ", 0, 1))
        assert get_transfer_actions(TransactionAdapter(builder.build())) == {}


class TestInnerTransfers:
    def test_grouped_under_outer_program(self):
        builder = _usdc_builder()
        outer = builder.add_instruction(UNKNOWN_DEX, [USER])
        builder.add_spl_transfer(outer, USER_USDC, POOL_USDC, USER, 1_000_000)

        actions = get_transfer_actions(TransactionAdapter(builder.build()))
        group = actions[f"{UNKNOWN_DEX}:0"]
        assert len(group) == 1
        transfer = group[0]
        assert transfer.idx == "0-0"
        assert transfer.info.mint == TOKENS.USDC
        assert transfer.info.token_amount.amount == "1000000"
        assert transfer.info.token_amount.ui_amount == 1.0
        assert transfer.info.authority == USER
        assert transfer.info.destination_owner == POOL
        assert TRANSFER_BUCKET not in actions

    def test_regrouped_under_nested_program(self):
        builder = _usdc_builder()
        outer = builder.add_instruction(UNKNOWN_DEX, [USER])
        builder.add_inner(outer, ROUTER, [USER])
        builder.add_spl_transfer(outer, USER_USDC, POOL_USDC, USER, 1_000_000)

        actions = get_transfer_actions(TransactionAdapter(builder.build()))
        assert f"{UNKNOWN_DEX}:0" not in actions
        assert [t.idx for t in actions[f"{ROUTER}:0-0"]] == ["0-1"]

    def test_inner_transfers_of_system_outer_are_skipped(self):
        builder = _usdc_builder()
        outer = builder.add_instruction(SYSTEM_PROGRAM_ID, [USER])
        builder.add_spl_transfer(outer, USER_USDC, POOL_USDC, USER, 1_000_000)
        assert get_transfer_actions(TransactionAdapter(builder.build())) == {}

    def test_plain_transfer_defaults_to_sol(self):
        builder = TxBuilder()
        outer = builder.add_instruction(UNKNOWN_DEX, [USER])
        builder.add_spl_transfer(outer, key(30), key(31), USER, 10)
        # plain Transfer registers both accounts as SOL-denominated
        actions = get_transfer_actions(TransactionAdapter(builder.build()))
        assert actions[f"{UNKNOWN_DEX}:0"][0].info.mint == TOKENS.SOL

    def test_fee_account_is_flagged(self):
        builder = TxBuilder()
        outer = builder.add_instruction(UNKNOWN_DEX, [USER])
        builder.add_system_transfer(outer, USER, JITO_TIP, 10_000)

        transfers = get_transfer_actions(TransactionAdapter(builder.build()))[f"{UNKNOWN_DEX}:0"]
        assert transfers[0].is_fee
        assert transfers[0].info.destination == JITO_TIP


class TestExtraActions:
    def _mint_to_tx(self):
        builder = TxBuilder()
        builder.token_balance(USER_USDC, TOKENS.USDC, USER, 6, pre=0, post=7_000_000)
        outer = builder.add_instruction(UNKNOWN_DEX, [USER])
        builder.add_inner(outer, TOKEN_PROGRAM_ID, [TOKENS.USDC, USER_USDC, POOL],
                          bytes([7]) + struct.pack("<Q", 7_000_000))
        return builder.build()

    def test_mint_to_ignored_by_default(self):
        assert get_transfer_actions(TransactionAdapter(self._mint_to_tx())) == {}

    def test_mint_to_collected_when_requested(self):
        actions = get_transfer_actions(TransactionAdapter(self._mint_to_tx()), ExtraAction.MINT_TO)
        transfer = actions[f"{UNKNOWN_DEX}:0"][0]
        assert transfer.type == "mintTo"
        assert transfer.info.mint == TOKENS.USDC
        assert transfer.info.destination == USER_USDC
        assert transfer.info.source == ""
        assert transfer.info.token_amount.ui_amount == 7.0

    def test_all_covers_every_extra_type(self):
        assert ExtraAction.ALL.type_names() == ["mintTo", "burn", "mintToChecked", "burnChecked"]
        assert ExtraAction.NONE.type_names() == []
