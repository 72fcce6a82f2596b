"""
Parse orchestrator.

``DexParser`` runs the adapter, classifier and transfer classifier over a
transaction, dispatches every program's instructions to the registered
decoders and collects the results into a ``ParseResult``.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Type

from .config import ParseConfig
from .constants import ALT_PROGRAM_ID, DEX_PROGRAMS, get_program_name
from .core import InstructionClassifier, TransactionAdapter, TransactionUtils
from .core.swap import TransferActions
from .decoders import (
    LIQUIDITY_DECODERS,
    MEME_DECODERS,
    TRADE_DECODERS,
    AltEventDecoder,
    LiquidityDecoder,
    MemeDecoder,
    TradeDecoder,
)
from .fetchers import resolve_loaded_addresses, resolve_token_accounts
from .models import DexInfo, ExtraAction, ParseResult, TradeInfo
from .utils.trade import format_dedupe_key, get_final_swap

logger = logging.getLogger(__name__)

JUPITER_PROGRAM_IDS = frozenset(p.id for p in (
    DEX_PROGRAMS.JUPITER,
    DEX_PROGRAMS.JUPITER_DCA,
    DEX_PROGRAMS.JUPITER_DCA_KEEPER1,
    DEX_PROGRAMS.JUPITER_DCA_KEEPER2,
    DEX_PROGRAMS.JUPITER_DCA_KEEPER3,
    DEX_PROGRAMS.JUPITER_VA,
    DEX_PROGRAMS.JUPITER_LIMIT_ORDER_V2,
))

# Parse scopes
ALL = "all"
TRADES = "trades"
LIQUIDITY = "liquidity"
TRANSFERS = "transfer"

# (index, result) -> False stops the batch
BatchCallback = Callable[[int, ParseResult], Optional[bool]]


def deduplicate_trades(trades: Sequence[TradeInfo]) -> List[TradeInfo]:
    seen = set()
    unique = []
    for trade in trades:
        key = format_dedupe_key(trade.idx, trade.signature)
        if key not in seen:
            seen.add(key)
            unique.append(trade)
    return unique


class DexParser:
    """
    Entry point for parsing DEX activity out of ``getTransaction`` results.

    Starts from the built-in decoder registries; ``register_*`` overrides
    apply to this instance only.
    """

    def __init__(self):
        self.trade_decoders: Dict[str, Type[TradeDecoder]] = dict(TRADE_DECODERS)
        self.liquidity_decoders: Dict[str, Type[LiquidityDecoder]] = dict(LIQUIDITY_DECODERS)
        self.meme_decoders: Dict[str, Type[MemeDecoder]] = dict(MEME_DECODERS)

    def register_trade_decoder(self, program_id: str, decoder: Type[TradeDecoder]) -> None:
        self.trade_decoders[program_id] = decoder

    def register_liquidity_decoder(self, program_id: str, decoder: Type[LiquidityDecoder]) -> None:
        self.liquidity_decoders[program_id] = decoder

    def register_meme_decoder(self, program_id: str, decoder: Type[MemeDecoder]) -> None:
        self.meme_decoders[program_id] = decoder

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def parse_all(self, tx: Mapping[str, Any], config: Optional[ParseConfig] = None) -> ParseResult:
        return self._parse(tx, config, ALL)

    def parse_trades(self, tx: Mapping[str, Any], config: Optional[ParseConfig] = None) -> List[TradeInfo]:
        return self._parse(tx, config, TRADES).trades

    def parse_liquidity(self, tx: Mapping[str, Any], config: Optional[ParseConfig] = None):
        return self._parse(tx, config, LIQUIDITY).liquidities

    def parse_transfers(self, tx: Mapping[str, Any], config: Optional[ParseConfig] = None):
        return self._parse(tx, config, TRANSFERS).transfers

    def parse_batch(self, txs: Sequence[Mapping[str, Any]], config: Optional[ParseConfig] = None,
                    concurrent: bool = True, max_workers: int = 4,
                    callback: Optional[BatchCallback] = None) -> List[Optional[ParseResult]]:
        """
        Parse many transactions, results in input order.

        A failing transaction yields a ``state=False`` result instead of
        aborting the batch. When ``callback`` returns ``False`` no further
        transactions are started and their slots stay ``None``.
        """
        results: List[Optional[ParseResult]] = [None] * len(txs)
        if not txs:
            return results

        if not concurrent or max_workers <= 1:
            for i, tx in enumerate(txs):
                results[i] = self._parse_isolated(tx, config)
                if callback is not None and callback(i, results[i]) is False:
                    break
            return results

        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            futures = {pool.submit(self._parse_isolated, tx, config): i for i, tx in enumerate(txs)}
            for future in as_completed(futures):
                index = futures[future]
                results[index] = future.result()
                if callback is not None and callback(index, results[index]) is False:
                    for pending in futures:
                        pending.cancel()
                    break
        return results

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _parse_isolated(self, tx: Mapping[str, Any], config: Optional[ParseConfig]) -> ParseResult:
        try:
            return self.parse_all(tx, config)
        except Exception as e:
            logger.debug("Batch item failed", exc_info=True)
            return ParseResult(state=False, msg=f"Parse error: {e}")

    def _parse(self, tx: Mapping[str, Any], config: Optional[ParseConfig], scope: str) -> ParseResult:
        config = config or ParseConfig()
        result = ParseResult()
        try:
            self._parse_into(result, tx, config, scope)
        except Exception as e:
            if config.throw_error:
                raise
            logger.debug("Transaction parse failed", exc_info=True)
            result.state = False
            result.msg = f"Parse error: {e}"
        return result

    def _parse_into(self, result: ParseResult, tx: Mapping[str, Any], config: ParseConfig, scope: str) -> None:
        if isinstance(tx, Mapping):
            result.slot = int(tx.get("slot") or 0)

        tx = resolve_loaded_addresses(tx, config.alts_fetcher, config)
        adapter = TransactionAdapter(tx, config)
        resolve_token_accounts(adapter, config.token_accounts_fetcher, config)
        utils = TransactionUtils(adapter)
        classifier = InstructionClassifier(adapter)

        dex_info = utils.get_dex_info(classifier)
        program_ids = classifier.get_all_program_ids()

        result.timestamp = adapter.block_time
        result.signature = adapter.signature
        result.signer = list(adapter.signers)
        result.compute_units = adapter.compute_units
        result.tx_status = adapter.tx_status

        if not self._passes_filters(result, adapter, program_ids, config):
            logger.debug("Skipping %s: %s", result.signature, result.msg)
            return

        transfer_actions = utils.get_transfer_actions(ExtraAction.ALL)

        result.fee = adapter.fee
        result.sol_balance_change = adapter.sol_balance_changes(by_owner=False).get(adapter.signer)
        result.token_balance_change = adapter.token_balance_changes(by_owner=True).get(adapter.signer)

        parse_type = config.effective_parse_type()
        want_trades = scope == TRADES or (scope == ALL and parse_type.trade)
        want_liquidity = scope == LIQUIDITY or (scope == ALL and parse_type.liquidity)
        want_transfers = scope == TRANSFERS or (scope == ALL and parse_type.transfer)
        want_meme = scope == ALL and parse_type.meme_event
        want_alt = scope == ALL and parse_type.alt_event

        if dex_info.program_id in JUPITER_PROGRAM_IDS:
            if want_trades:
                self._parse_jupiter(result, adapter, utils, classifier, dex_info, transfer_actions, config)
            if result.trades or result.aggregate_trade:
                return

        for program_id in program_ids:
            if config.program_ids and program_id not in config.program_ids:
                continue
            if program_id in config.ignore_program_ids:
                continue
            instructions = classifier.get_instructions(program_id)
            program_info = DexInfo(program_id=program_id, amm=get_program_name(program_id), route=dex_info.route)

            if want_trades:
                decoder_cls = self.trade_decoders.get(program_id)
                if decoder_cls is not None:
                    decoder = decoder_cls(adapter, program_info, transfer_actions, instructions, utils)
                    result.trades.extend(decoder.process_trades())
                elif config.try_unknown_dex:
                    result.trades.extend(self._unknown_dex_trades(adapter, utils, program_info, transfer_actions))

            if want_liquidity:
                decoder_cls = self.liquidity_decoders.get(program_id)
                if decoder_cls is not None:
                    decoder = decoder_cls(adapter, program_info, transfer_actions, instructions, utils)
                    result.liquidities.extend(utils.attach_user_balance_to_lps(decoder.process_liquidity()))

            if want_meme:
                decoder_cls = self.meme_decoders.get(program_id)
                if decoder_cls is not None:
                    decoder = decoder_cls(adapter, program_info, transfer_actions, instructions, utils)
                    result.meme_events.extend(decoder.process_events())

        if want_alt:
            alt_instructions = classifier.get_instructions(ALT_PROGRAM_ID)
            if alt_instructions:
                result.alt_events.extend(AltEventDecoder(adapter, alt_instructions).process_events())

        if result.trades:
            result.trades = deduplicate_trades(result.trades)
            if config.should_aggregate():
                result.aggregate_trade = utils.attach_trade_fee(get_final_swap(result.trades, dex_info))

        if not result.trades and not result.liquidities and want_transfers:
            for transfers in transfer_actions.values():
                result.transfers.extend(transfers)

    @staticmethod
    def _passes_filters(result: ParseResult, adapter: TransactionAdapter,
                        program_ids: Sequence[str], config: ParseConfig) -> bool:
        account_keys = set(adapter.account_keys)
        if config.program_ids and not set(config.program_ids) & set(program_ids):
            result.state = False
            result.msg = "No matching program ids"
            return False
        if config.account_include and not set(config.account_include) & account_keys:
            result.state = False
            result.msg = "No matching accounts include"
            return False
        if config.account_exclude and set(config.account_exclude) & account_keys:
            result.state = False
            result.msg = "Account excluded"
            return False
        return True

    def _parse_jupiter(self, result: ParseResult, adapter: TransactionAdapter, utils: TransactionUtils,
                       classifier: InstructionClassifier, dex_info: DexInfo,
                       transfer_actions: TransferActions, config: ParseConfig) -> None:
        decoder_cls = self.trade_decoders.get(dex_info.program_id)
        if decoder_cls is None:
            return
        info = DexInfo(
            program_id=dex_info.program_id,
            amm=get_program_name(dex_info.program_id),
            route=dex_info.route,
        )
        instructions = classifier.get_instructions(dex_info.program_id)
        trades = decoder_cls(adapter, info, transfer_actions, instructions, utils).process_trades()
        if not trades:
            return
        if config.should_aggregate():
            result.aggregate_trade = utils.attach_trade_fee(get_final_swap(trades, dex_info))
        else:
            result.trades.extend(trades)

    @staticmethod
    def _unknown_dex_trades(adapter: TransactionAdapter, utils: TransactionUtils, dex_info: DexInfo,
                            transfer_actions: TransferActions) -> List[TradeInfo]:
        """Swaps of programs without a decoder, synthesized from their transfer groups."""
        trades = []
        prefix = f"{dex_info.program_id}:"
        for key, transfers in transfer_actions.items():
            if len(transfers) < 2 or not key.startswith(prefix):
                continue
            if not any(adapter.is_supported_token(t.info.mint) for t in transfers):
                continue
            trade = utils.process_swap_data(transfers, dex_info, skip_native=True)
            if trade is not None:
                trades.append(utils.attach_token_transfer_info(trade, transfer_actions))
        return trades
