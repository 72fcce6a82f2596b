"""Unit tests for protocol decoders"""
import struct

import pytest

from dexparser.constants import ALT_PROGRAM_ID, DEX_PROGRAMS, TOKENS
from dexparser.constants import discriminators as disc
from dexparser.core import InstructionClassifier, TransactionAdapter
from dexparser.decoders import (
    AltEventDecoder,
    HumidiFiDecoder,
    JupiterDecoder,
    OrcaLiquidityDecoder,
    PumpfunDecoder,
    PumpfunEventDecoder,
    get_decoder,
    propamm,
)
from dexparser.models import PoolEventType, TradeType
from dexparser.utils import deobfuscate, find_associated_token_address, get_account_trade_type

from conftest import MEME_MINT, POOL, POOL_WSOL, USER, USER_USDC, USER_WSOL, TxBuilder, build_decoder, key, raw

BONDING_CURVE = key(10)
TABLE = key(11)
POOL_MEME = key(12)
USER_MEME = find_associated_token_address(USER, MEME_MINT)


class TestRegistry:
    def test_builtin_decoders_are_registered(self):
        assert get_decoder("trade", DEX_PROGRAMS.JUPITER.id) is JupiterDecoder
        assert get_decoder("meme", DEX_PROGRAMS.PUMP_FUN.id) is PumpfunEventDecoder
        assert get_decoder("liquidity", DEX_PROGRAMS.ORCA.id) is OrcaLiquidityDecoder
        assert get_decoder("trade", key(99)) is None

    def test_unknown_kind(self):
        with pytest.raises(ValueError):
            get_decoder("nft", DEX_PROGRAMS.ORCA.id)


class TestPumpfun:
    @pytest.fixture
    def pumpfun_tx(self):
        pumpfun = DEX_PROGRAMS.PUMP_FUN.id
        builder = TxBuilder()
        outer = builder.add_instruction(
            pumpfun,
            [key(13), key(14), MEME_MINT, BONDING_CURVE, key(15), USER_MEME, USER],
            disc.PUMPFUN.BUY + struct.pack("<QQ", 1_000_000_000, 600_000_000),
        )
        payload = (
            raw(MEME_MINT)
            + struct.pack("<QQ?", 500_000_000, 1_000_000_000, True)
            + raw(USER)
            + struct.pack("<qQQ", 1_699_999_999, 30_000_000_000, 1_000_000_000_000_000)
        )
        builder.add_inner(outer, pumpfun, [key(16)], disc.PUMPFUN.TRADE_EVENT + payload)
        return builder.build()

    def test_trade_event(self, pumpfun_tx):
        events = build_decoder(PumpfunEventDecoder, pumpfun_tx, DEX_PROGRAMS.PUMP_FUN.id).process_events()
        assert len(events) == 1
        event = events[0]
        assert event.type == TradeType.BUY
        assert event.user == USER
        assert event.base_mint == MEME_MINT
        assert event.quote_mint == TOKENS.SOL
        assert event.input_token.amount == 0.5
        assert event.output_token.amount == 1000.0
        assert event.bonding_curve == BONDING_CURVE
        assert event.idx == "0-0"
        assert event.timestamp == 1_700_000_000
        assert event.pool_b_reserve == 30.0

    def test_trade_from_event(self, pumpfun_tx):
        trades = build_decoder(PumpfunDecoder, pumpfun_tx, DEX_PROGRAMS.PUMP_FUN.id).process_trades()
        assert len(trades) == 1
        trade = trades[0]
        assert trade.type == TradeType.BUY
        assert trade.pool == [BONDING_CURVE]
        assert trade.program_id == DEX_PROGRAMS.PUMP_FUN.id
        assert trade.amm == DEX_PROGRAMS.PUMP_FUN.name
        assert trade.input_token.mint == TOKENS.SOL
        assert trade.output_token.amount_raw == "1000000000"

    def test_truncated_event_is_skipped(self):
        pumpfun = DEX_PROGRAMS.PUMP_FUN.id
        builder = TxBuilder()
        outer = builder.add_instruction(pumpfun, [USER])
        builder.add_inner(outer, pumpfun, [key(16)], disc.PUMPFUN.TRADE_EVENT + raw(MEME_MINT))
        events = build_decoder(PumpfunEventDecoder, builder.build(), pumpfun).process_events()
        assert events == []


class TestHumidiFi:
    HUMIDIFI = DEX_PROGRAMS.HUMIDIFI.id

    def _builder(self, amount_in: int, base_to_quote: bool) -> TxBuilder:
        builder = TxBuilder()
        payload = bytes(8) + struct.pack("<QB", amount_in, 1 if base_to_quote else 0)
        builder.add_instruction(
            self.HUMIDIFI,
            [USER, POOL, key(17), key(18), USER_MEME, USER_WSOL],
            deobfuscate(payload, disc.HUMIDIFI.XOR_KEY),
        )
        builder.token_balance(USER_MEME, MEME_MINT, USER, 6, pre=5_000_000, post=3_000_000)
        builder.token_balance(USER_WSOL, TOKENS.SOL, USER, 9, pre=0, post=40_000_000)
        return builder

    def test_payload_fallback(self):
        tx = self._builder(2_000_000, base_to_quote=True).build()
        trades = build_decoder(HumidiFiDecoder, tx, self.HUMIDIFI).process_trades()
        assert len(trades) == 1
        trade = trades[0]
        assert trade.type == TradeType.SELL
        assert trade.input_token.mint == MEME_MINT
        assert trade.input_token.amount == 2.0
        assert trade.input_token.source == USER_MEME
        assert trade.output_token.mint == TOKENS.SOL
        assert trade.pool == [POOL]
        assert trade.idx == "0-0"

    def test_payload_quote_to_base_is_buy(self):
        tx = self._builder(40_000_000, base_to_quote=False).build()
        trade = build_decoder(HumidiFiDecoder, tx, self.HUMIDIFI).process_trades()[0]
        assert trade.type == TradeType.BUY
        assert trade.input_token.mint == TOKENS.SOL
        assert trade.output_token.mint == MEME_MINT

    def test_transfers_take_precedence(self):
        builder = self._builder(2_000_000, base_to_quote=True)
        builder.add_spl_transfer(0, USER_MEME, POOL_MEME, USER, 2_000_000)
        builder.add_spl_transfer(0, POOL_WSOL, USER_WSOL, POOL, 40_000_000)
        builder.token_balance(POOL_MEME, MEME_MINT, POOL, 6, pre=0, post=2_000_000)
        trade = build_decoder(HumidiFiDecoder, builder.build(), self.HUMIDIFI).process_trades()[0]
        assert trade.type == TradeType.SELL
        assert trade.output_token.amount == 0.04
        assert trade.amm == DEX_PROGRAMS.HUMIDIFI.name
        assert trade.pool == [POOL]

    def test_payload_not_decoded_when_transfers_present(self, monkeypatch):
        calls = []
        monkeypatch.setattr(propamm, "deobfuscate", lambda data, key: calls.append(data) or data)
        builder = self._builder(2_000_000, base_to_quote=True)
        builder.add_spl_transfer(0, USER_MEME, POOL_MEME, USER, 2_000_000)
        builder.add_spl_transfer(0, POOL_WSOL, USER_WSOL, POOL, 40_000_000)
        builder.token_balance(POOL_MEME, MEME_MINT, POOL, 6, pre=0, post=2_000_000)
        trades = build_decoder(HumidiFiDecoder, builder.build(), self.HUMIDIFI).process_trades()
        assert len(trades) == 1
        assert calls == []

    def test_payload_without_transfers_is_decoded(self):
        tx = self._builder(3_500_000, base_to_quote=True).build()
        trade = build_decoder(HumidiFiDecoder, tx, self.HUMIDIFI).process_trades()[0]
        assert trade.input_token.amount_raw == "3500000"
        assert trade.input_token.mint == MEME_MINT
        assert trade.output_token.destination == USER_WSOL
        assert trade.type == get_account_trade_type(USER, MEME_MINT, USER_MEME, USER_WSOL)

    def test_short_payload_is_ignored(self):
        builder = TxBuilder()
        builder.add_instruction(self.HUMIDIFI, [USER, POOL, key(17), key(18), USER_MEME, USER_WSOL], bytes(10))
        assert build_decoder(HumidiFiDecoder, builder.build(), self.HUMIDIFI).process_trades() == []


class TestAltEvents:
    def _decode(self, accounts, data):
        builder = TxBuilder()
        builder.add_instruction(ALT_PROGRAM_ID, accounts, data)
        adapter = TransactionAdapter(builder.build())
        return AltEventDecoder(adapter, InstructionClassifier(adapter).get_instructions(ALT_PROGRAM_ID)).process_events()

    def test_extend(self):
        new = [key(30), key(31)]
        data = struct.pack("<IQ", 2, 2) + raw(new[0]) + raw(new[1])
        events = self._decode([TABLE, USER, USER], data)
        assert len(events) == 1
        event = events[0]
        assert event.type == "ExtendLookupTable"
        assert event.alt_account == TABLE
        assert event.alt_authority == USER
        assert event.new_addresses == new
        assert event.idx == "0"

    def test_extend_count_exceeding_payload(self):
        data = struct.pack("<IQ", 2, 5) + raw(key(30))
        events = self._decode([TABLE, USER], data)
        assert events[0].new_addresses == [key(30)]

    def test_truncated_count(self):
        assert self._decode([TABLE, USER], struct.pack("<II", 2, 1)) == []

    def test_create(self):
        data = struct.pack("<IQB", 0, 299_999_990, 254)
        event = self._decode([TABLE, USER, USER, key(31)], data)[0]
        assert event.type == "CreateLookupTable"
        assert event.recent_slot == 299_999_990
        assert event.payer_account == USER

    def test_close_needs_recipient(self):
        assert self._decode([TABLE, USER], struct.pack("<I", 4)) == []
        event = self._decode([TABLE, USER, key(32)], struct.pack("<I", 4))[0]
        assert event.recipient == key(32)

    def test_unknown_opcode(self):
        assert self._decode([TABLE, USER], struct.pack("<I", 9)) == []


class TestJupiter:
    JUPITER = DEX_PROGRAMS.JUPITER.id

    def _route_event(self, amm, in_mint, in_amount, out_mint, out_amount):
        return disc.JUPITER.ROUTE_EVENT + (
            raw(amm) + raw(in_mint) + struct.pack("<Q", in_amount) + raw(out_mint) + struct.pack("<Q", out_amount)
        )

    def _tx(self, meme_in: int):
        builder = TxBuilder()
        outer = builder.add_instruction(self.JUPITER, [USER], disc.JUPITER.ROUTE)
        builder.add_inner(outer, self.JUPITER, [key(40)], self._route_event(
            DEX_PROGRAMS.RAYDIUM_V4.id, TOKENS.SOL, 1_000_000_000, MEME_MINT, 5_000_000))
        builder.add_inner(outer, self.JUPITER, [key(40)], self._route_event(
            DEX_PROGRAMS.ORCA.id, MEME_MINT, meme_in, TOKENS.USDC, 150_000_000))
        return builder.build()

    def test_hops_are_merged(self):
        trades = build_decoder(JupiterDecoder, self._tx(5_000_000), self.JUPITER).process_trades()
        assert len(trades) == 1
        trade = trades[0]
        assert trade.input_token.mint == TOKENS.SOL
        assert trade.input_token.amount == 1.0
        assert trade.output_token.mint == TOKENS.USDC
        assert trade.output_token.amount == 150.0
        assert trade.amms == [DEX_PROGRAMS.RAYDIUM_V4.name, DEX_PROGRAMS.ORCA.name]
        assert trade.route == DEX_PROGRAMS.JUPITER.name
        assert trade.type == TradeType.BUY
        assert trade.idx == "0-0"

    def test_unbalanced_intermediate_reports_each_hop(self):
        trades = build_decoder(JupiterDecoder, self._tx(4_000_000), self.JUPITER).process_trades()
        assert [(t.input_token.mint, t.output_token.mint) for t in trades] == [
            (TOKENS.SOL, MEME_MINT),
            (MEME_MINT, TOKENS.USDC),
        ]
        assert [t.idx for t in trades] == ["0-0", "0-1"]


class TestOrcaLiquidity:
    def test_add_liquidity(self):
        orca = DEX_PROGRAMS.ORCA.id
        whirlpool = key(50)
        pool_meme, pool_sol = key(51), key(52)
        builder = TxBuilder()
        outer = builder.add_instruction(
            orca,
            [whirlpool, key(53), USER, key(54), USER_MEME, USER_WSOL, pool_meme, pool_sol],
            disc.ORCA.ADD_LIQUIDITY + struct.pack("<QQ", 777, 0) + struct.pack("<QQ", 1, 1),
        )
        # SOL leg first; the event still reports the non-quote token as token0
        builder.add_spl_transfer(outer, USER_WSOL, pool_sol, USER, 250_000_000)
        builder.add_spl_transfer(outer, USER_MEME, pool_meme, USER, 3_000_000)
        builder.token_balance(USER_WSOL, TOKENS.SOL, USER, 9, pre=250_000_000, post=0)
        builder.token_balance(USER_MEME, MEME_MINT, USER, 6, pre=3_000_000, post=0)
        builder.token_balance(pool_sol, TOKENS.SOL, whirlpool, 9, pre=0, post=250_000_000)
        builder.token_balance(pool_meme, MEME_MINT, whirlpool, 6, pre=0, post=3_000_000)

        events = build_decoder(OrcaLiquidityDecoder, builder.build(), orca).process_liquidity()
        assert len(events) == 1
        event = events[0]
        assert event.type == PoolEventType.ADD
        assert event.pool_id == whirlpool
        assert event.token0_mint == MEME_MINT
        assert event.token0_amount == 3.0
        assert event.token1_mint == TOKENS.SOL
        assert event.token1_amount_raw == "250000000"
        assert event.lp_amount_raw == "777"
        assert event.idx == "0"
        assert event.user == USER

    def test_swap_instruction_is_not_liquidity(self):
        orca = DEX_PROGRAMS.ORCA.id
        builder = TxBuilder()
        builder.add_instruction(orca, [key(50), USER_USDC], bytes(range(8)) + bytes(16))
        assert build_decoder(OrcaLiquidityDecoder, builder.build(), orca).process_liquidity() == []
