"""Unit tests for TransactionAdapter"""
import base64

import pytest
from solders.hash import Hash
from solders.message import Message
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.system_program import TransferParams, transfer
from solders.token.associated import get_associated_token_address
from solders.transaction import VersionedTransaction

from dexparser.constants import SYSTEM_PROGRAM_ID, TOKEN_PROGRAM_ID, TOKENS
from dexparser.core import TransactionAdapter, get_transfer_actions
from dexparser.models import TransactionStatus
from dexparser.utils.trade import find_associated_token_address

from conftest import POOL, USER, USER_USDC, USER_WSOL, TxBuilder, key, spl_transfer_checked_data


class TestAccountTable:
    def test_fee_payer_is_first_key(self, swap_tx):
        adapter = TransactionAdapter(swap_tx)
        assert adapter.account_keys[0] == USER
        assert adapter.signer == USER
        assert adapter.signers == [USER]

    def test_loaded_addresses_are_appended(self):
        builder = TxBuilder()
        builder.add_instruction(SYSTEM_PROGRAM_ID, [USER])
        builder.loaded = {"writable": [key(40), key(41)], "readonly": [key(42)]}
        tx = builder.build()
        adapter = TransactionAdapter(tx)
        static = len(tx["transaction"]["message"]["accountKeys"])
        assert len(adapter.account_keys) == static + 3
        assert adapter.account_keys[-3:] == [key(40), key(41), key(42)]

    def test_json_parsed_keys_carry_signer_flags(self):
        tx = {
            "transaction": {
                "signatures": ["sig"],
                "message": {
                    "accountKeys": [
                        {"pubkey": USER, "signer": True, "writable": True, "source": "transaction"},
                        {"pubkey": POOL, "signer": False, "writable": True, "source": "transaction"},
                    ],
                    "instructions": [],
                },
            },
            "meta": None,
        }
        adapter = TransactionAdapter(tx)
        assert adapter.account_keys == [USER, POOL]
        assert adapter.signers == [USER]
        assert adapter.tx_status == TransactionStatus.UNKNOWN

    def test_legacy_message_is_not_versioned(self, swap_tx):
        adapter = TransactionAdapter(swap_tx)
        assert adapter.is_versioned is False
        assert adapter.account_keys == swap_tx["transaction"]["message"]["accountKeys"]

    def test_v0_message_reads_static_keys(self):
        builder = TxBuilder()
        builder.add_instruction(SYSTEM_PROGRAM_ID, [USER, POOL])
        builder.loaded = {"writable": [key(40)], "readonly": []}
        tx = builder.build()
        message = tx["transaction"]["message"]
        message["staticAccountKeys"] = message.pop("accountKeys")

        adapter = TransactionAdapter(tx)
        assert adapter.is_versioned is True
        assert adapter.account_keys == [USER, SYSTEM_PROGRAM_ID, POOL, key(40)]
        assert adapter.instructions[0].program_id == SYSTEM_PROGRAM_ID

    def test_rejects_missing_message(self):
        with pytest.raises(ValueError):
            TransactionAdapter({"transaction": {"signatures": []}})


class TestStatusAndFee:
    def test_success(self, swap_tx):
        adapter = TransactionAdapter(swap_tx)
        assert adapter.tx_status == TransactionStatus.SUCCESS
        assert adapter.fee.amount == "5000"
        assert adapter.fee.decimals == 9
        assert adapter.compute_units == 42_000
        assert adapter.signature == "TestSig111"

    def test_failed(self):
        builder = TxBuilder()
        builder.add_instruction(SYSTEM_PROGRAM_ID, [USER])
        adapter = TransactionAdapter(builder.build(err={"InstructionError": [0, "Custom"]}))
        assert adapter.tx_status == TransactionStatus.FAILED


class TestTokenRegistry:
    def test_mint_from_token_balances(self, swap_tx):
        adapter = TransactionAdapter(swap_tx)
        assert adapter.get_spl_token_mint(USER_USDC) == TOKENS.USDC
        assert adapter.get_token_decimals(TOKENS.USDC) == 6
        assert adapter.is_supported_token(TOKENS.USDC)
        assert adapter.get_token_account_owner(USER_WSOL) == USER

    def test_mint_from_transfer_checked(self):
        builder = TxBuilder()
        mint, source, destination = key(50), key(51), key(52)
        builder.add_instruction(TOKEN_PROGRAM_ID, [source, mint, destination, USER],
                                spl_transfer_checked_data(10, 8))
        adapter = TransactionAdapter(builder.build())
        assert adapter.get_spl_token_mint(destination) == mint
        assert adapter.get_token_decimals(mint) == 8

    def test_static_decimals_fallback(self, swap_tx):
        adapter = TransactionAdapter(swap_tx)
        assert adapter.get_token_decimals(TOKENS.USDT) == 6
        assert adapter.get_token_decimals(key(77)) == 0

    def test_register_token_account(self, swap_tx):
        adapter = TransactionAdapter(swap_tx)
        account = adapter.unknown_token_accounts()[0]
        adapter.register_token_account(account, key(60), 4)
        assert adapter.get_spl_token_mint(account) == key(60)
        assert adapter.get_token_decimals(key(60)) == 4
        assert account not in adapter.unknown_token_accounts()


class TestAssociatedTokenAddress:
    def test_matches_solders_derivation(self):
        owner = Pubkey.from_string(USER)
        mint = Pubkey.from_string(TOKENS.USDC)
        expected = str(get_associated_token_address(owner, mint))
        assert find_associated_token_address(USER, TOKENS.USDC) == expected

    def test_invalid_owner_returns_none(self):
        assert find_associated_token_address("not-a-key", TOKENS.USDC) is None

    def test_adapter_prefers_standard_program(self, swap_tx):
        adapter = TransactionAdapter(swap_tx)
        assert adapter.get_ata_for(USER, TOKENS.USDC) == find_associated_token_address(USER, TOKENS.USDC)


class TestBalanceChanges:
    def test_no_entry_has_equal_pre_and_post(self, swap_tx):
        adapter = TransactionAdapter(swap_tx)
        for change in adapter.sol_balance_changes().values():
            assert change.pre.amount != change.post.amount
        for by_mint in adapter.token_balance_changes().values():
            for change in by_mint.values():
                assert change.pre.amount != change.post.amount

    def test_signer_sol_change(self, swap_tx):
        adapter = TransactionAdapter(swap_tx)
        change = adapter.sol_balance_changes()[USER]
        assert change.change.amount == "-5000"

    def test_token_changes_by_owner(self, swap_tx):
        adapter = TransactionAdapter(swap_tx)
        changes = adapter.token_balance_changes(by_owner=True)[USER]
        assert changes[TOKENS.USDC].change.amount == "-1000000"
        assert changes[TOKENS.SOL].change.amount == "500000000"

    def test_pre_only_balance_is_fully_spent(self):
        builder = TxBuilder()
        builder.add_instruction(SYSTEM_PROGRAM_ID, [USER])
        builder.token_balance(USER_USDC, TOKENS.USDC, USER, 6, pre=2_500_000)
        adapter = TransactionAdapter(builder.build())
        change = adapter.token_balance_changes()[USER_USDC][TOKENS.USDC]
        assert change.change.amount == "-2500000"
        assert change.post.amount == "0"

    def test_unchanged_token_balance_is_dropped(self):
        builder = TxBuilder()
        builder.add_instruction(SYSTEM_PROGRAM_ID, [USER])
        builder.token_balance(USER_USDC, TOKENS.USDC, USER, 6, pre=100, post=100)
        adapter = TransactionAdapter(builder.build())
        assert adapter.token_balance_changes() == {}


class TestWireTransaction:
    def test_base64_wire_transaction(self):
        payer = Pubkey.from_string(USER)
        recipient = Pubkey.from_string(key(9))
        ix = transfer(TransferParams(from_pubkey=payer, to_pubkey=recipient, lamports=1234))
        message = Message.new_with_blockhash([ix], payer, Hash.default())
        wire = VersionedTransaction.populate(message, [Signature.default()])
        tx = {
            "slot": 7,
            "transaction": [base64.b64encode(bytes(wire)).decode(), "base64"],
            "meta": {"err": None, "fee": 5000, "preBalances": [], "postBalances": []},
        }

        adapter = TransactionAdapter(tx)
        assert adapter.account_keys[0] == USER
        assert SYSTEM_PROGRAM_ID in adapter.account_keys
        assert len(adapter.instructions) == 1

        transfers = get_transfer_actions(adapter)["transfer"]
        assert transfers[0].info.token_amount.amount == "1234"
        assert transfers[0].info.destination == key(9)
