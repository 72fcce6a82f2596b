"""
Swap Synthesizer.

Turns the transfers correlated with one program instruction into a
``TradeInfo``, then enriches trades and pool events with the signer's
observed balance changes.
"""

import logging
from typing import Dict, List, Optional, Sequence

from ..constants import DEX_PROGRAMS, TOKENS, get_program_by_id, is_fee_account
from ..models import (
    BalanceChange,
    DexInfo,
    ExtraAction,
    FeeInfo,
    PoolEvent,
    TokenInfo,
    TradeInfo,
    TransferData,
)
from ..utils.trade import convert_to_ui_amount, format_transfer_key, get_trade_type
from .adapter import TransactionAdapter
from .classifier import InstructionClassifier
from .transfers import get_transfer_actions

logger = logging.getLogger(__name__)

TransferActions = Dict[str, List[TransferData]]

_BASE_TRANSFER_TYPES = ("transfer", "transferChecked")


def transfer_token_info(transfer: TransferData) -> TokenInfo:
    info = transfer.info
    return TokenInfo(
        mint=info.mint,
        amount=info.token_amount.ui_amount or 0.0,
        amount_raw=info.token_amount.amount,
        decimals=info.token_amount.decimals,
        authority=info.authority,
        destination=info.destination,
        destination_owner=info.destination_owner,
        destination_balance=info.destination_balance,
        destination_pre_balance=info.destination_pre_balance,
        source=info.source,
        source_balance=info.source_balance,
        source_pre_balance=info.source_pre_balance,
    )


class TransactionUtils:
    """Trade synthesis and enrichment bound to one adapter."""

    def __init__(self, adapter: TransactionAdapter):
        self.adapter = adapter

    def get_dex_info(self, classifier: InstructionClassifier) -> DexInfo:
        """
        Route and AMM labels for the transaction.

        The first AMM-tagged program names the AMM, the first other known
        program names the route and owns ``program_id``.
        """
        program_ids = classifier.get_all_program_ids()
        info = DexInfo()
        for program_id in program_ids:
            program = get_program_by_id(program_id)
            if program is None:
                continue
            if program.is_amm:
                if not info.amm:
                    info.amm = program.name
                    info.program_id = info.program_id or program.id
            elif not info.route:
                info.route = program.name
                info.program_id = program.id
        if not info.program_id and program_ids:
            info.program_id = program_ids[0]
        return info

    def get_transfer_actions(self, extra: ExtraAction = ExtraAction.NONE) -> TransferActions:
        return get_transfer_actions(self.adapter, extra)

    def get_transfers_for_instruction(self, actions: TransferActions, program_id: str,
                                      outer_index: int, inner_index: int = -1,
                                      extra: ExtraAction = ExtraAction.NONE) -> List[TransferData]:
        """Transfer-type actions attributed to one instruction."""
        allowed = set(_BASE_TRANSFER_TYPES) | set(extra.type_names())
        transfers = actions.get(format_transfer_key(program_id, outer_index, inner_index), [])
        return [t for t in transfers if t.type in allowed]

    # ------------------------------------------------------------------
    # Synthesis
    # ------------------------------------------------------------------

    def get_swap_signer(self) -> str:
        keys = self.adapter.account_keys
        if DEX_PROGRAMS.JUPITER_DCA.id in keys and len(keys) > 2:
            return keys[2]
        return self.adapter.signer

    def process_swap_data(self, transfers: Sequence[TransferData], dex_info: DexInfo,
                          skip_native: bool = False) -> Optional[TradeInfo]:
        """Synthesize one trade from correlated transfers; ``None`` under two mints."""
        if not transfers:
            return None

        unique: List[TokenInfo] = []
        seen = set()
        for transfer in transfers:
            if skip_native and transfer.info.mint == TOKENS.NATIVE:
                continue
            if transfer.info.mint not in seen:
                seen.add(transfer.info.mint)
                unique.append(transfer_token_info(transfer))
        if len(unique) < 2:
            return None

        signer = self.get_swap_signer()
        input_token, output_token = unique[0], unique[-1]
        okx = DEX_PROGRAMS.OKX_ROUTER.id
        if signer in (output_token.source, output_token.authority) or okx in (output_token.source, output_token.authority):
            input_token, output_token = output_token, input_token

        fee_transfer = self._sum_token_amounts(transfers, input_token, output_token, signer)

        trade = TradeInfo(
            type=get_trade_type(input_token.mint, output_token.mint),
            input_token=input_token,
            output_token=output_token,
            user=signer,
            program_id=dex_info.program_id,
            amm=dex_info.amm,
            route=dex_info.route,
            slot=self.adapter.slot,
            timestamp=self.adapter.block_time,
            signature=self.adapter.signature,
            idx=transfers[0].idx,
        )
        if fee_transfer is not None:
            trade.fee = FeeInfo(
                mint=fee_transfer.info.mint,
                amount=fee_transfer.info.token_amount.ui_amount or 0.0,
                amount_raw=fee_transfer.info.token_amount.amount,
                decimals=fee_transfer.info.token_amount.decimals,
                recipient=fee_transfer.info.destination,
            )
        return trade

    def _sum_token_amounts(self, transfers: Sequence[TransferData], input_token: TokenInfo,
                           output_token: TokenInfo, signer: str) -> Optional[TransferData]:
        seen = set()
        input_raw = output_raw = 0
        fee_transfer = None
        okx = DEX_PROGRAMS.OKX_ROUTER.id

        for transfer in transfers:
            info = transfer.info
            destination = info.destination_owner or info.destination
            if is_fee_account(destination):
                fee_transfer = transfer
                continue
            if info.authority == okx and destination == signer:
                continue
            key = f"{info.token_amount.amount}-{info.mint}"
            if key in seen:
                continue
            seen.add(key)

            if info.mint == input_token.mint:
                input_raw += int(info.token_amount.amount or 0)
            if info.mint == output_token.mint:
                output_raw += int(info.token_amount.amount or 0)

        input_token.amount_raw = str(input_raw)
        input_token.amount = convert_to_ui_amount(input_raw, input_token.decimals)
        output_token.amount_raw = str(output_raw)
        output_token.amount = convert_to_ui_amount(output_raw, output_token.decimals)
        return fee_transfer

    # ------------------------------------------------------------------
    # Enrichment
    # ------------------------------------------------------------------

    def _signer_change(self, mint: str, user: str, sol_changes: Dict[str, BalanceChange],
                       token_changes: Dict[str, Dict[str, BalanceChange]]) -> Optional[BalanceChange]:
        if mint == TOKENS.SOL:
            return sol_changes.get(user)
        return token_changes.get(user, {}).get(mint)

    def attach_token_transfer_info(self, trade: Optional[TradeInfo],
                                   actions: TransferActions) -> Optional[TradeInfo]:
        """
        Copy account details from the transfers that carried each side.

        A transfer matches when mint and raw amount are identical; the last
        match across all buckets wins. Without a match, the signer's own
        balance change supplies the balances.
        """
        if trade is None:
            return None

        input_transfer = output_transfer = None
        for transfers in actions.values():
            for transfer in transfers:
                info = transfer.info
                if info.mint == trade.input_token.mint and info.token_amount.amount == trade.input_token.amount_raw:
                    input_transfer = transfer
                if info.mint == trade.output_token.mint and info.token_amount.amount == trade.output_token.amount_raw:
                    output_transfer = transfer

        sol_changes = self.adapter.sol_balance_changes(by_owner=False)
        token_changes = self.adapter.token_balance_changes(by_owner=True)
        input_change = self._signer_change(trade.input_token.mint, trade.user, sol_changes, token_changes)
        output_change = self._signer_change(trade.output_token.mint, trade.user, sol_changes, token_changes)

        if input_change is not None:
            trade.input_token.balance_change = input_change.change.amount.lstrip("-")
        else:
            trade.input_token.balance_change = trade.input_token.amount_raw
        if output_change is not None:
            trade.output_token.balance_change = output_change.change.amount
        else:
            trade.output_token.balance_change = trade.output_token.amount_raw

        if input_transfer is not None:
            _copy_transfer_accounts(trade.input_token, input_transfer)
        elif input_change is not None:
            trade.input_token.source_balance = input_change.post
            trade.input_token.source_pre_balance = input_change.pre

        if output_transfer is not None:
            _copy_transfer_accounts(trade.output_token, output_transfer)
        elif output_change is not None:
            trade.output_token.destination_balance = output_change.post
            trade.output_token.destination_pre_balance = output_change.pre

        trade.signer = list(self.adapter.signers)
        return trade

    def attach_trade_fee(self, trade: Optional[TradeInfo]) -> Optional[TradeInfo]:
        """Derive an implicit fee from the gap between quoted output and the signer's increase."""
        if trade is None:
            return None

        sol_by_owner = self.adapter.sol_balance_changes(by_owner=True)
        if trade.fee is None:
            mint = trade.output_token.mint
            if mint == TOKENS.SOL:
                change = sol_by_owner.get(trade.user)
            else:
                change = self.adapter.token_balance_changes(by_owner=True).get(trade.user, {}).get(mint)
            if change is not None:
                fee_raw = int(trade.output_token.amount_raw or 0) - int(change.change.amount)
                if fee_raw > 0:
                    trade.fee = FeeInfo(
                        mint=mint,
                        amount=convert_to_ui_amount(fee_raw, trade.output_token.decimals),
                        amount_raw=str(fee_raw),
                        decimals=trade.output_token.decimals,
                    )
                    trade.output_token.balance_change = change.change.amount

        if trade.input_token.mint == TOKENS.SOL:
            change = sol_by_owner.get(trade.user)
            if change is not None and abs(change.change.ui_amount or 0.0) > trade.input_token.amount:
                trade.input_token.balance_change = change.change.amount
        return trade

    def get_lp_transfers(self, transfers: Sequence[TransferData]) -> List[TransferData]:
        """Transfer legs of a liquidity instruction, the non-quote token first."""
        tokens = [t for t in transfers if "transfer" in t.type]
        if len(tokens) >= 2:
            first, second = tokens[0], tokens[1]
            if first.info.mint == TOKENS.SOL or (
                self.adapter.is_supported_token(first.info.mint)
                and not self.adapter.is_supported_token(second.info.mint)
            ):
                return [second, first] + tokens[2:]
        return tokens

    def attach_user_balance_to_lps(self, liquidities: List[PoolEvent]) -> List[PoolEvent]:
        sol_changes = self.adapter.sol_balance_changes(by_owner=False)
        token_changes = self.adapter.token_balance_changes(by_owner=True)
        signers = list(self.adapter.signers)

        for pool in liquidities:
            for side in ("token0", "token1"):
                mint = getattr(pool, f"{side}_mint")
                change = self._signer_change(mint, pool.user, sol_changes, token_changes) if mint else None
                if change is not None:
                    setattr(pool, f"{side}_balance_change", change.change.amount)
                elif getattr(pool, f"{side}_amount_raw"):
                    setattr(pool, f"{side}_balance_change", getattr(pool, f"{side}_amount_raw"))
            pool.signer = signers
        return liquidities


def _copy_transfer_accounts(token: TokenInfo, transfer: TransferData) -> None:
    info = transfer.info
    token.authority = info.authority
    token.source = info.source
    token.destination = info.destination
    token.destination_owner = info.destination_owner
    token.destination_balance = info.destination_balance
    token.destination_pre_balance = info.destination_pre_balance
    token.source_balance = info.source_balance
    token.source_pre_balance = info.source_pre_balance
