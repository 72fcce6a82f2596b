"""Static reference data: program catalog, token table, discriminators."""

from . import discriminators
from .instruction_types import AltInstruction, SplTokenInstruction, SystemInstruction
from .programs import (
    ALT_PROGRAM_ID,
    ASSOCIATED_TOKEN_PROGRAM_ID,
    DEX_PROGRAMS,
    FEE_ACCOUNTS,
    SKIP_PROGRAM_IDS,
    SYSTEM_PROGRAM_ID,
    SYSTEM_PROGRAMS,
    TOKEN_2022_PROGRAM_ID,
    TOKEN_PROGRAM_ID,
    VAULT_PROGRAM_IDS,
    DexProgram,
    get_program_by_id,
    get_program_name,
    is_dex_program,
    is_fee_account,
    is_system_program,
)
from .tokens import (
    TOKEN_DECIMALS,
    TOKEN_REGISTRY,
    TOKENS,
    TokenMeta,
    get_static_decimals,
    get_token_meta,
    is_quote_token,
    is_sol,
    is_stablecoin,
    resolve_token,
)

__all__ = [
    "discriminators",
    "AltInstruction",
    "SplTokenInstruction",
    "SystemInstruction",
    "ALT_PROGRAM_ID",
    "ASSOCIATED_TOKEN_PROGRAM_ID",
    "DEX_PROGRAMS",
    "FEE_ACCOUNTS",
    "SKIP_PROGRAM_IDS",
    "SYSTEM_PROGRAM_ID",
    "SYSTEM_PROGRAMS",
    "TOKEN_2022_PROGRAM_ID",
    "TOKEN_PROGRAM_ID",
    "VAULT_PROGRAM_IDS",
    "DexProgram",
    "get_program_by_id",
    "get_program_name",
    "is_dex_program",
    "is_fee_account",
    "is_system_program",
    "TOKEN_DECIMALS",
    "TOKEN_REGISTRY",
    "TOKENS",
    "TokenMeta",
    "get_static_decimals",
    "get_token_meta",
    "is_quote_token",
    "is_sol",
    "is_stablecoin",
    "resolve_token",
]
