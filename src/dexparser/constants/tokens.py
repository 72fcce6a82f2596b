"""Token Registry: well-known mints, their symbols and decimals."""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Optional


class TOKENS:
    NATIVE = "11111111111111111111111111111111"
    SOL = "So11111111111111111111111111111111111111112"
    USDC = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
    USDT = "Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB"
    USD1 = "USD1ttGY1N17NEEHLmELoaybftRBUSErhqYiQzvEmuB"
    USDG = "2u1tszSeqZ3qBWF3uNGPFc8TzMk2tdiwknnRMWGWjGWH"
    PYUSD = "2b1kV6DkPAnxd5ixfnxCpjxmKwqjjaYmCZfHsFu24GXo"
    EURC = "HzwqbKZw8HxMN6bF2yFZNrht3c2iXXzpKcFu7uBEDKtr"
    USDY = "A1KLoBrKBde8Ty9qtNQUtq3C2ortoC3u7twggz7sEto6"
    FDUSD = "9zNQRsGLjNKwCUU5Gq5LR8beUCPzQMVMqKAi3SSZh54u"


@dataclass(frozen=True)
class TokenMeta:
    symbol: str
    name: str
    mint: str
    decimals: int
    stable: bool = False


TOKEN_REGISTRY: Mapping[str, TokenMeta] = MappingProxyType({
    "SOL": TokenMeta("SOL", "Wrapped SOL", TOKENS.SOL, 9),
    "USDC": TokenMeta("USDC", "USD Coin", TOKENS.USDC, 6, stable=True),
    "USDT": TokenMeta("USDT", "Tether USD", TOKENS.USDT, 6, stable=True),
    "USD1": TokenMeta("USD1", "World Liberty USD", TOKENS.USD1, 6, stable=True),
    "USDG": TokenMeta("USDG", "Global Dollar", TOKENS.USDG, 6, stable=True),
    "PYUSD": TokenMeta("PYUSD", "PayPal USD", TOKENS.PYUSD, 6, stable=True),
    "EURC": TokenMeta("EURC", "Euro Coin", TOKENS.EURC, 6, stable=True),
    "USDY": TokenMeta("USDY", "Ondo US Dollar Yield", TOKENS.USDY, 6, stable=True),
    "FDUSD": TokenMeta("FDUSD", "First Digital USD", TOKENS.FDUSD, 6, stable=True),
})

_BY_MINT: Mapping[str, TokenMeta] = MappingProxyType({t.mint: t for t in TOKEN_REGISTRY.values()})

TOKEN_DECIMALS: Mapping[str, int] = MappingProxyType({t.mint: t.decimals for t in TOKEN_REGISTRY.values()})


def get_token_meta(symbol: str) -> Optional[TokenMeta]:
    return TOKEN_REGISTRY.get(symbol.upper())


def resolve_token(symbol_or_mint: str) -> Optional[TokenMeta]:
    token = get_token_meta(symbol_or_mint)
    if token:
        return token
    return _BY_MINT.get(symbol_or_mint)


def get_static_decimals(mint: str) -> Optional[int]:
    return TOKEN_DECIMALS.get(mint)


def is_stablecoin(mint: str) -> bool:
    token = _BY_MINT.get(mint)
    return bool(token and token.stable)


def is_sol(mint: str) -> bool:
    return mint == TOKENS.SOL or mint == TOKENS.NATIVE


def is_quote_token(mint: str) -> bool:
    return is_sol(mint) or is_stablecoin(mint)
