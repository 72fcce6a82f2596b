"""
Protocol decoders.

Importing this package registers every built-in decoder in the trade,
liquidity and meme registries of ``base``.
"""

from .base import (
    LIQUIDITY_DECODERS,
    MEME_DECODERS,
    TRADE_DECODERS,
    BaseDecoder,
    EventTradeDecoder,
    LaunchpadEventDecoder,
    LiquidityDecoder,
    MemeDecoder,
    TradeDecoder,
    get_decoder,
    register_decoder,
)
from .alt import AltEventDecoder
from .boopfun import BoopfunDecoder, BoopfunEventDecoder
from .heaven import HeavenDecoder, HeavenEventDecoder
from .jupiter import JupiterDecoder
from .jupiter_orders import JupiterDcaDecoder, JupiterLimitOrderV2Decoder, JupiterOrderDecoder, JupiterVaDecoder
from .liquidity import PoolAction, PoolLayout, TransferLiquidityDecoder
from .meteora import (
    MeteoraDammLiquidityDecoder,
    MeteoraDammV2LiquidityDecoder,
    MeteoraDecoder,
    MeteoraDlmmLiquidityDecoder,
)
from .meteora_dbc import MeteoraDbcDecoder, MeteoraDbcEventDecoder
from .moonit import MoonitDecoder, MoonitEventDecoder
from .orca import OrcaDecoder, OrcaLiquidityDecoder
from .propamm import GoonFiDecoder, HumidiFiDecoder, ObricDecoder, PropAmmDecoder, SolFiDecoder
from .pumpfun import PumpfunDecoder, PumpfunEventDecoder
from .pumpswap import PumpswapDecoder, PumpswapLiquidityDecoder
from .raydium import (
    RaydiumClLiquidityDecoder,
    RaydiumCpmmLiquidityDecoder,
    RaydiumDecoder,
    RaydiumV4LiquidityDecoder,
)
from .raydium_launchpad import RaydiumLaunchpadDecoder, RaydiumLaunchpadEventDecoder
from .sugar import SugarDecoder, SugarEventDecoder

__all__ = [
    "LIQUIDITY_DECODERS",
    "MEME_DECODERS",
    "TRADE_DECODERS",
    "BaseDecoder",
    "EventTradeDecoder",
    "LaunchpadEventDecoder",
    "LiquidityDecoder",
    "MemeDecoder",
    "TradeDecoder",
    "get_decoder",
    "register_decoder",
    "AltEventDecoder",
    "BoopfunDecoder",
    "BoopfunEventDecoder",
    "HeavenDecoder",
    "HeavenEventDecoder",
    "JupiterDecoder",
    "JupiterOrderDecoder",
    "JupiterDcaDecoder",
    "JupiterVaDecoder",
    "JupiterLimitOrderV2Decoder",
    "PoolAction",
    "PoolLayout",
    "TransferLiquidityDecoder",
    "MeteoraDecoder",
    "MeteoraDlmmLiquidityDecoder",
    "MeteoraDammLiquidityDecoder",
    "MeteoraDammV2LiquidityDecoder",
    "MeteoraDbcDecoder",
    "MeteoraDbcEventDecoder",
    "MoonitDecoder",
    "MoonitEventDecoder",
    "OrcaDecoder",
    "OrcaLiquidityDecoder",
    "PropAmmDecoder",
    "SolFiDecoder",
    "GoonFiDecoder",
    "ObricDecoder",
    "HumidiFiDecoder",
    "PumpfunDecoder",
    "PumpfunEventDecoder",
    "PumpswapDecoder",
    "PumpswapLiquidityDecoder",
    "RaydiumDecoder",
    "RaydiumV4LiquidityDecoder",
    "RaydiumCpmmLiquidityDecoder",
    "RaydiumClLiquidityDecoder",
    "RaydiumLaunchpadDecoder",
    "RaydiumLaunchpadEventDecoder",
    "SugarDecoder",
    "SugarEventDecoder",
]
