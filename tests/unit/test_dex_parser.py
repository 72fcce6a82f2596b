"""Unit tests for DexParser"""
import struct

import base58
import pytest

from dexparser import DexParser, ParseConfig, ParseType
from dexparser.constants import ALT_PROGRAM_ID, DEX_PROGRAMS, TOKENS
from dexparser.constants import discriminators as disc
from dexparser.decoders import TradeDecoder
from dexparser.models import TokenInfo, TradeInfo, TradeType, TransactionStatus

from conftest import MEME_MINT, POOL, UNKNOWN_DEX, USER, TxBuilder, key


def with_signature(tx, signature):
    return dict(tx, transaction=dict(tx["transaction"], signatures=[signature]))


def jupiter_tx():
    def route_event(amm, in_mint, in_amount, out_mint, out_amount):
        raw = base58.b58decode
        return disc.JUPITER.ROUTE_EVENT + (
            raw(amm) + raw(in_mint) + struct.pack("<Q", in_amount) + raw(out_mint) + struct.pack("<Q", out_amount)
        )

    jupiter = DEX_PROGRAMS.JUPITER.id
    builder = TxBuilder()
    outer = builder.add_instruction(jupiter, [USER], disc.JUPITER.ROUTE)
    builder.add_inner(outer, jupiter, [key(40)], route_event(
        DEX_PROGRAMS.RAYDIUM_V4.id, TOKENS.SOL, 1_000_000_000, MEME_MINT, 5_000_000))
    builder.add_inner(outer, jupiter, [key(40)], route_event(
        DEX_PROGRAMS.ORCA.id, MEME_MINT, 5_000_000, TOKENS.USDC, 150_000_000))
    return builder.build()


class FixedTradeDecoder(TradeDecoder):
    def process_trades(self):
        return [TradeInfo(
            type=TradeType.BUY,
            input_token=TokenInfo(mint=TOKENS.SOL, amount=1.0, amount_raw="1000000000", decimals=9),
            output_token=TokenInfo(mint=MEME_MINT, amount=1.0, amount_raw="1000000", decimals=6),
            user=self.adapter.signer,
            program_id=self.dex_info.program_id,
            amm="Custom",
            idx="0",
            signature=self.adapter.signature,
        )]


@pytest.fixture
def parser():
    return DexParser()


class TestParseAll:
    def test_unknown_dex_fallback(self, parser, swap_tx):
        result = parser.parse_all(swap_tx)
        assert result.state
        assert result.tx_status == TransactionStatus.SUCCESS
        assert result.signature == "TestSig111"
        assert result.signer == [USER]
        assert result.slot == 300_000_000
        assert result.compute_units == 42_000
        assert result.fee.amount == "5000"

        assert len(result.trades) == 1
        trade = result.trades[0]
        assert trade.type == TradeType.SELL
        assert trade.input_token.mint == TOKENS.USDC
        assert trade.input_token.amount_raw == "1000000"
        assert trade.input_token.amount == 1.0
        assert trade.output_token.mint == TOKENS.SOL
        assert trade.output_token.amount == 0.5
        assert trade.program_id == UNKNOWN_DEX
        assert trade.idx == "0-0"

        # single hop: the aggregate is the trade itself
        assert result.aggregate_trade is trade
        assert result.transfers == []

    def test_signer_balance_changes(self, parser, swap_tx):
        result = parser.parse_all(swap_tx)
        assert result.sol_balance_change.change.amount == "-5000"
        assert result.token_balance_change[TOKENS.USDC].change.amount == "-1000000"

    def test_without_unknown_dex_falls_back_to_transfers(self, parser, swap_tx):
        result = parser.parse_all(swap_tx, ParseConfig(try_unknown_dex=False))
        assert result.trades == []
        assert result.aggregate_trade is None
        assert sorted(t.info.mint for t in result.transfers) == sorted([TOKENS.USDC, TOKENS.SOL])

    def test_ignored_program(self, parser, swap_tx):
        result = parser.parse_all(swap_tx, ParseConfig(ignore_program_ids=[UNKNOWN_DEX]))
        assert result.trades == []
        assert len(result.transfers) == 2

    def test_to_dict_is_camel_case(self, parser, swap_tx):
        data = parser.parse_all(swap_tx).to_dict()
        assert data["txStatus"] == "success"
        assert data["computeUnits"] == 42_000
        assert data["aggregateTrade"]["type"] == "SELL"
        assert data["trades"][0]["inputToken"]["amountRaw"] == "1000000"
        assert data["solBalanceChange"]["change"]["amount"] == "-5000"
        assert "msg" not in data


class TestFilters:
    def test_program_filter_rejects(self, parser, swap_tx):
        result = parser.parse_all(swap_tx, ParseConfig(program_ids=[key(90)]))
        assert not result.state
        assert result.msg == "No matching program ids"
        assert result.trades == []

    def test_program_filter_accepts(self, parser, swap_tx):
        result = parser.parse_all(swap_tx, ParseConfig(program_ids=[UNKNOWN_DEX]))
        assert result.state
        assert len(result.trades) == 1

    def test_account_include(self, parser, swap_tx):
        result = parser.parse_all(swap_tx, ParseConfig(account_include=[key(91)]))
        assert result.msg == "No matching accounts include"
        assert parser.parse_all(swap_tx, ParseConfig(account_include=[POOL])).state

    def test_account_exclude(self, parser, swap_tx):
        result = parser.parse_all(swap_tx, ParseConfig(account_exclude=[POOL]))
        assert not result.state
        assert result.msg == "Account excluded"


class TestErrors:
    def test_malformed_transaction(self, parser):
        result = parser.parse_all({"slot": 5, "transaction": {}})
        assert not result.state
        assert result.msg.startswith("Parse error")
        assert result.slot == 5

    def test_throw_error(self, parser):
        with pytest.raises(ValueError):
            parser.parse_all({"transaction": {}}, ParseConfig(throw_error=True))


class TestScopes:
    def test_parse_trades(self, parser, swap_tx):
        trades = parser.parse_trades(swap_tx)
        assert [t.type for t in trades] == [TradeType.SELL]

    def test_parse_transfers(self, parser, swap_tx):
        assert len(parser.parse_transfers(swap_tx)) == 2

    def test_parse_liquidity_of_swap(self, parser, swap_tx):
        assert parser.parse_liquidity(swap_tx) == []

    def test_trades_only_config(self, parser, swap_tx):
        result = parser.parse_all(swap_tx, ParseConfig.trades_only())
        assert [t.type for t in result.trades] == [TradeType.SELL]
        assert result.aggregate_trade is not None
        assert result.meme_events == []

    def test_liquidity_only_config(self, parser, swap_tx):
        result = parser.parse_all(swap_tx, ParseConfig(parse_type=ParseType.parse_liquidity_only()))
        assert result.trades == []
        assert result.aggregate_trade is None
        assert result.transfers == []


class TestProtocols:
    def test_jupiter_route_is_aggregated(self, parser):
        result = parser.parse_all(jupiter_tx())
        assert result.trades == []
        trade = result.aggregate_trade
        assert trade.input_token.mint == TOKENS.SOL
        assert trade.output_token.mint == TOKENS.USDC
        assert trade.route == DEX_PROGRAMS.JUPITER.name

    def test_jupiter_hops_without_aggregation(self, parser):
        config = ParseConfig(parse_type=ParseType(trade=True), aggregate_trades=False)
        result = parser.parse_all(jupiter_tx(), config)
        assert result.aggregate_trade is None
        assert len(result.trades) == 1
        assert result.trades[0].amms == [DEX_PROGRAMS.RAYDIUM_V4.name, DEX_PROGRAMS.ORCA.name]

    def test_dca_fill_takes_jupiter_path(self, parser):
        dca = DEX_PROGRAMS.JUPITER_DCA.id
        raw = base58.b58decode
        filled = disc.JUPITER_DCA.FILLED + (
            raw(USER) + raw(key(22)) + raw(TOKENS.SOL) + raw(TOKENS.USDC)
            + struct.pack("<QQ", 1_000_000_000, 150_000_000) + raw(TOKENS.USDC) + struct.pack("<Q", 0)
        )
        builder = TxBuilder(signer=key(20))
        outer = builder.add_instruction(dca, [key(20), key(22), USER], bytes(8))
        builder.add_inner(outer, dca, [key(21)], filled)

        trade = parser.parse_all(builder.build()).aggregate_trade
        assert trade.user == USER
        assert trade.input_token.mint == TOKENS.SOL
        assert trade.output_token.mint == TOKENS.USDC
        assert trade.route == DEX_PROGRAMS.JUPITER_DCA.name

    def test_pumpfun_meme_event_and_trade(self, parser):
        pumpfun = DEX_PROGRAMS.PUMP_FUN.id
        bonding_curve = key(10)
        builder = TxBuilder()
        outer = builder.add_instruction(
            pumpfun,
            [key(13), key(14), MEME_MINT, bonding_curve, key(15), key(16), USER],
            disc.PUMPFUN.SELL + struct.pack("<QQ", 2_000_000, 0),
        )
        payload = (
            base58.b58decode(MEME_MINT)
            + struct.pack("<QQ?", 60_000_000, 2_000_000, False)
            + base58.b58decode(USER)
            + struct.pack("<qQQ", 1_700_000_000, 30_000_000_000, 1_000_000_000_000_000)
        )
        builder.add_inner(outer, pumpfun, [key(17)], disc.PUMPFUN.TRADE_EVENT + payload)

        result = parser.parse_all(builder.build())
        assert [e.type for e in result.meme_events] == [TradeType.SELL]
        assert result.trades[0].type == TradeType.SELL
        assert result.trades[0].pool == [bonding_curve]
        assert result.aggregate_trade.output_token.mint == TOKENS.SOL

    def test_alt_events(self, parser):
        builder = TxBuilder()
        builder.add_instruction(ALT_PROGRAM_ID, [key(11), USER, USER],
                                struct.pack("<IQ", 2, 1) + base58.b58decode(key(30)))
        result = parser.parse_all(builder.build())
        assert [e.type for e in result.alt_events] == ["ExtendLookupTable"]
        assert result.alt_events[0].new_addresses == [key(30)]


class TestRegistration:
    def test_register_trade_decoder_is_per_instance(self, swap_tx):
        custom = DexParser()
        custom.register_trade_decoder(UNKNOWN_DEX, FixedTradeDecoder)

        trades = custom.parse_trades(swap_tx)
        assert [t.amm for t in trades] == ["Custom"]
        assert [t.amm for t in DexParser().parse_trades(swap_tx)] != ["Custom"]

    def test_duplicate_trades_are_dropped(self, swap_tx):
        class DoubleDecoder(FixedTradeDecoder):
            def process_trades(self):
                return super().process_trades() * 2

        custom = DexParser()
        custom.register_trade_decoder(UNKNOWN_DEX, DoubleDecoder)
        assert len(custom.parse_trades(swap_tx)) == 1


class TestBatch:
    def _txs(self, swap_tx):
        return [with_signature(swap_tx, "SigA"), {"transaction": {}}, with_signature(swap_tx, "SigC")]

    def test_sequential(self, parser, swap_tx):
        results = parser.parse_batch(self._txs(swap_tx), concurrent=False)
        assert [r.state for r in results] == [True, False, True]
        assert results[0].signature == "SigA"
        assert results[2].signature == "SigC"

    def test_concurrent_keeps_input_order(self, parser, swap_tx):
        results = parser.parse_batch(self._txs(swap_tx), max_workers=3)
        assert [r.signature for r in results] == ["SigA", "", "SigC"]
        assert results[1].msg.startswith("Parse error")

    def test_empty(self, parser):
        assert parser.parse_batch([]) == []

    def test_callback_stops_sequential_batch(self, parser, swap_tx):
        seen = []

        def stop_after_first(index, result):
            seen.append(index)
            return False

        results = parser.parse_batch(self._txs(swap_tx), concurrent=False, callback=stop_after_first)
        assert seen == [0]
        assert results[0] is not None
        assert results[1:] == [None, None]

    def test_callback_sees_every_result(self, parser, swap_tx):
        seen = []
        parser.parse_batch(self._txs(swap_tx), callback=lambda i, r: seen.append((i, r.state)))
        assert sorted(seen) == [(0, True), (1, False), (2, True)]
