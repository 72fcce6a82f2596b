"""Program catalog: maps on-chain program ids to DEX names and tags."""

from dataclasses import dataclass
from types import MappingProxyType
from typing import FrozenSet, Mapping, Optional, Tuple


@dataclass(frozen=True)
class DexProgram:
    id: str
    name: str
    tags: Tuple[str, ...] = ()

    @property
    def is_amm(self) -> bool:
        return "amm" in self.tags

    @property
    def is_route(self) -> bool:
        return "route" in self.tags


SYSTEM_PROGRAM_ID = "11111111111111111111111111111111"
TOKEN_PROGRAM_ID = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"
TOKEN_2022_PROGRAM_ID = "TokenzQdBNbLqP5VEhdkAS6EPFLC1PHnBqCXEpPxuEb"
ASSOCIATED_TOKEN_PROGRAM_ID = "ATokenGPvbdGVxr1b2hvZbsiqW5xWH25efTNsLJA8knL"
COMPUTE_BUDGET_PROGRAM_ID = "ComputeBudget111111111111111111111111111111"
ALT_PROGRAM_ID = "AddressLookupTab1e1111111111111111111111111"


def _p(id: str, name: str, *tags: str) -> DexProgram:
    return DexProgram(id=id, name=name, tags=tags)


class DEX_PROGRAMS:
    """Known programs, grouped the way routes and pools are labelled in output."""

    # Aggregators and routers
    JUPITER = _p("JUP6LkbZbjS1jKKwapdHNy74zcZ3tLUZoi5QNyVTaV4", "Jupiter", "route")
    JUPITER_V2 = _p("JUP2jxvXaqu7NQY1GmNF4m1vodw12LVXYxbFL2uJvfo", "JupiterV2", "route")
    JUPITER_V4 = _p("JUP4Fb2cqiRUcaTHdrPC8h2gNsA2ETXiPDD33WcGuJB", "JupiterV4", "route")
    JUPITER_DCA = _p("DCA265Vj8a9CEuX1eb1LWRnDT7uK6q1xMipnNyatn23M", "JupiterDCA", "route")
    JUPITER_DCA_KEEPER1 = _p("DCAKxn5PFNN1mBREPWGdk1RXg5aVH9rPErLfBFEi2Emb", "JupiterDcaKeeper1", "route")
    JUPITER_DCA_KEEPER2 = _p("DCAKuApAuZtVNYLk3KTAVW9GLWVvPbnb5CxxRRmVgcTr", "JupiterDcaKeeper2", "route")
    JUPITER_DCA_KEEPER3 = _p("DCAK36VfExkPdAkYUQg6ewgxyinvcEyPLyHjRbmveKFw", "JupiterDcaKeeper3", "route")
    JUPITER_LIMIT_ORDER = _p("jupoNjAxXgZ4rjzxzPMP4oxduvQsQtZzyknqvzYNrNu", "JupiterLimit", "route")
    JUPITER_LIMIT_ORDER_V2 = _p("j1o2qRpjcyUwEvwtcfhEQefh773ZgjxcVRry7LDqg5X", "JupiterLimitV2", "route")
    JUPITER_VA = _p("VALaaymxQh2mNy2trH9jUqHT1mTow76wpTcGmSWSwJe", "JupiterVA", "route")
    OKX_DEX = _p("6m2CDdhRgxpH4WjvdzxAYbGxwdGUz5MziiL5jek2kBma", "OKX", "route")
    OKX_ROUTER = _p("HV1KXxWFaSeriyFvXyx48FqG9BoFbfinB8njCJonqP7K", "OKXRouter", "route")
    RAYDIUM_ROUTE = _p("routeUGWgWzqBWFcrCfv8tritsqukccJPu3q5GPP3xS", "RaydiumRoute", "route")
    SANCTUM = _p("stkitrT1Uoy18Dk1fTrgPw8W6MVzoCfYoAFT4MLsmhq", "Sanctum", "route")
    PHOTON = _p("BSfD6SHZigAfDWSjzD5Q41jw8LmKwtmjskPH9XW1mrRW", "Photon", "route")
    DFLOW = _p("DF1ow4tspfHX9JwWJsAb9epbkA8hmpSEAtxXy1V27QBH", "DFlow", "route")

    # AMMs
    RAYDIUM_V4 = _p("675kPX9MHTjS2zt1qfr1NYHuzeLXfQM9H24wFSUt1Mp8", "RaydiumV4", "amm")
    RAYDIUM_AMM = _p("5quBtoiQqxF9Jv6KYKctB59NT3gtJD2Y65kdnB1Uev3h", "RaydiumAMM", "amm")
    RAYDIUM_CPMM = _p("CPMMoo8L3F4NbTegBCKVNunggL7H1ZpdTHKxQB5qKP1C", "RaydiumCPMM", "amm")
    RAYDIUM_CL = _p("CAMMCzo5YL8w4VFF8KVHrK22GGUsp5VTaW7grrKgrWqK", "RaydiumCL", "amm")
    RAYDIUM_LCP = _p("LanMV9sAd7wArD4vJFi2qDdfnVhFxYSUg6eADduJ3uj", "RaydiumLaunchpad", "amm")
    ORCA = _p("whirLbMiicVdio4qvUfM5KAg6Ct8VwpYzGff3uctyCc", "Orca", "amm")
    ORCA_V2 = _p("9W959DqEETiGZocYWCQPaJ6sBmUzgfxXfqGeTEdp3aQP", "OrcaV2", "amm")
    ORCA_V1 = _p("DjVE6JNiYqPL2QXyCUUh8rNjHrbz9hXHNYt99MQ59qw1", "OrcaV1", "amm")
    PHOENIX = _p("PhoeNiXZ8ByJGLkxNfZRnkUfjvmuYqLR89jjFHGqdXY", "Phoenix", "route", "amm")
    OPENBOOK = _p("opnb2LAfJYbRMAHHvqjCwQxanZn7ReEHp1k81EohpZb", "Openbook", "amm")
    METEORA = _p("LBUZKhRxPF3XUpBCjp4YzTKgLccjZhTSDM9YuVaPwxo", "MeteoraDLMM", "amm")
    METEORA_DAMM = _p("Eo7WjKq67rjJQSZxS6z3YkapzY3eMj6Xy8X5EQVn5UaB", "MeteoraDamm", "amm")
    METEORA_DAMM_V2 = _p("cpamdpZCGKUy5JxQXB4dcpGPiikHawvSWAd6mEn1sGG", "MeteoraDammV2", "amm")
    METEORA_DBC = _p("dbcij3LWUppWqq96dh6gJWwBifmcGfLSB5D4DuSMaqN", "MeteoraDBC", "amm")
    SERUM_V3 = _p("9xQeWvG816bUx9EPjHmaT23yvVM2ZWbrrpZb9PusVFin", "SerumV3", "amm", "vault")
    ALDRIN = _p("AMM55ShdkoGRB5jVYPjWziwk8m5MpwyDgsMWHaMSQWH6", "Aldrin", "amm")
    ALDRIN_V2 = _p("CURVGoZn8zycx6FXwwevgBTB2gVvdbGTEpvMJDbgs2t4", "Aldrin V2", "amm")
    CREMA = _p("CLMM9tUoggJu2wagPkkqs9eFG4BWhVBZWkP1qv3Sp7tR", "Crema", "amm")
    GOOSEFX = _p("GAMMA7meSFWaBXF25oSUgmGRwaW6sCMFLmBNiMSdbHVT", "GooseFX GAMMA", "amm")
    LIFINITY = _p("EewxydAPCCVuNEyrVN68PuSYdQ7wKn27V9Gjeoi8dy3S", "Lifinity", "amm")
    LIFINITY_V2 = _p("2wT8Yq49kHgDzXuPxZSaeLaH1qbmGXtEyPy64bL7aD3c", "LifinityV2", "amm")
    MERCURIAL = _p("MERLuDFBMmsHnsBPZw2sDQZHvXFMwp8EdjudcU2HKky", "Mercurial", "amm")
    MOONIT = _p("MoonCVVNZFSYkqNXP6bxHLPL6QQJiMagDL3qcqUQTrG", "Moonit", "amm")
    ONEDEX = _p("DEXYosS6oEGvk8uCDayvwEZz4qEyDJRf9nFgYCaqPMTm", "1Dex", "amm")
    PUMP_FUN = _p("6EF8rrecthR5Dkzon8Nwu78hRvfCKubJ14M5uBEwF6P", "Pumpfun", "amm")
    PUMP_SWAP = _p("pAMMBay6oceH9fJKBRHGP5D4bD4sWpmSwMn52FMfXEA", "Pumpswap", "amm")
    SABER = _p("SSwpkEEcbUqx4vtoEByFjSkhKdCT862DNVb52nZg1UZ", "Saber", "amm")
    SAROS = _p("SSwapUtytfBdBn1b9NUGG6foMVPtcWgpRU32HToDUZr", "Saros", "amm")
    STABBLE = _p("swapNyd8XiQwJ6ianp9snpu4brUqFxadzvHebnAXjJZ", "Stabble", "amm")
    STABBLE_WEIGHT = _p("swapFpHZwjELNnjvThjajtiVmkz3yPQEHjLtka2fwHW", "StabbleWeight", "amm")
    BOOP_FUN = _p("boop8hVGQGqehUK2iVEMEnMrL5RbjywRzHKBmBE7ry4", "Boopfun", "amm")
    ZERO_FI = _p("ZERor4xhbUycZ6gb9ntrhqscUcZmAbQDjEAtCf4hbZY", "ZeroFi", "amm")
    SUGAR = _p("deus4Bvftd5QKcEkE5muQaWGWDoma8GrySvPFrBPjhS", "Sugar", "amm")
    HEAVEN = _p("HEAVENoP2qxoeuF8Dj2oT1GHEnu49U5mJYkdeC8BAX2o", "Heaven", "amm")

    # Prop AMMs
    SOLFI = _p("SoLFiHG9TfgtdUXUjWAxi3LtvYuFyDLVhBWxdMZxyCe", "SolFi", "amm")
    GOONFI = _p("goonERTdGsjnkZqWuVjs73BZ3Pb9qoCUdBUL17BnS5j", "GoonFi", "amm")
    OBRIC_V2 = _p("obriQD1zbpyLz95G5n7nJe6a4DPjpFwa5XYPoNm113y", "ObricV2", "amm")
    HUMIDIFI = _p("9H6tua7jkLhdm3w8BvgpTn5LZNU7g4ZynDmCiNN3q6Rp", "HumidiFi", "amm")

    # Vaults
    METEORA_VAULT = _p("24Uqj9JCLxUeoC3hGfh5W3s9FM9uCHDS2SG3LYwBpyTi", "MeteoraVault", "vault")
    STABBLE_VAULT = _p("vo1tWgqZMjG61Z2T9qUaMYKqZ75CYzMuaZ2LZP1n7HV", "StabbleVault", "vault")
    HEAVEN_VAULT = _p("HEvSKofvBgfaexv23kMabbYqxasxU3mQ4ibBMEmJWHny", "HeavenStore", "vault")

    # Trading bots
    BANANA_GUN = _p("BANANAjs7FJiPQqJTGFzkZJndT9o7UmKiYYGaJz6frGu", "BananaGun", "bot")
    MINTECH = _p("minTcHYRLVPubRK8nt6sqe2ZpWrGDLQoNLipDJCGocY", "Mintech", "bot")
    BLOOM = _p("b1oomGGqPKGD6errbyfbVMBuzSC8WtAAYo8MwNafWW1", "Bloom", "bot")
    MAESTRO = _p("MaestroAAe9ge5HTc64VbBQZ6fP77pwvrhM8i1XWSAx", "Maestro", "bot")
    NOVA = _p("NoVA1TmDUqksaj2hB1nayFkPysjJbFiU76dT4qPw2wm", "Nova", "bot")
    APEPRO = _p("JSW99DKmxNyREQM14SQLDykeBvEUG63TeohrvmofEiw", "Apepro", "bot")

    @classmethod
    def all(cls) -> Tuple[DexProgram, ...]:
        return tuple(v for v in vars(cls).values() if isinstance(v, DexProgram))


_PROGRAMS_BY_ID: Mapping[str, DexProgram] = MappingProxyType({p.id: p for p in DEX_PROGRAMS.all()})

SYSTEM_PROGRAMS: FrozenSet[str] = frozenset({
    COMPUTE_BUDGET_PROGRAM_ID,
    SYSTEM_PROGRAM_ID,
    TOKEN_PROGRAM_ID,
    TOKEN_2022_PROGRAM_ID,
    ASSOCIATED_TOKEN_PROGRAM_ID,
})

SKIP_PROGRAM_IDS: FrozenSet[str] = frozenset({
    "pfeeUxB6jkeY1Hxd7CsFCAjcbHA9rWtchMGdZ6VojVZ",  # Pumpswap fee program
})

# Programs whose inner transfers stay attributed to the calling instruction
VAULT_PROGRAM_IDS: FrozenSet[str] = frozenset({
    DEX_PROGRAMS.METEORA_VAULT.id,
    DEX_PROGRAMS.STABBLE_VAULT.id,
    DEX_PROGRAMS.HEAVEN_VAULT.id,
})

FEE_ACCOUNTS: FrozenSet[str] = frozenset({
    # Jito tips
    "96gYZGLnJYVFmbjzopPSU6QiEV5fGqZNyN9nmNhvrZU5",
    "HFqU5x63VTqvQss8hp11i4wVV8bD44PvwucfZ2bU7gRe",
    "Cw8CFyM9FkoMi7K7Crf6HNQqf4uEMzpKw6QNghXLvLkY",
    "ADaUMid9yfUytqMBgopwjb2DTLSokTSzL1zt6iGPaS49",
    "DfXygSm4jCyNCybVYYK6DwvWqjKee8pbDmJGcLWNDXjh",
    "ADuUkR4vqLUMWXxW9gh6D6L8pMSawimctcNZ5pGwDcEt",
    "DttWaMuVvTiduZRnguLF7jNxTgiMBZ1hyAumKUiL2KRL",
    "3AVi9Tg9Uo68tJfuvoKvqKNWKkC5wPdSSdeBnizKZ6jT",
    # Jupiter partner referral vault
    "45ruCyfdRkWpRNGEqWzjCiXRHkZs8WXCLQ67Pnpye7Hp",
    # Pumpfun
    "39azUYFWPz3VHgKCf3VChUwbpURdCHRxjWVowf5jUJjg",
    "FWsW1xNtWscwNmKv6wVsU1iTzRN6wmmk3MjxRP5tT7hz",
    "G5UZAVbAf46s7cKWoyKu8kYTip9DGTpbLZ2qa9Aq69dP",
    "7hTckgnGnLQR6sdH7YkqFTAA7VwTfYFaZ6EhEsU3saCX",
    "9rPYyANsfQZw3DnDmKE3YCQF5E8oD89UXoHn9JFEhJUz",
    "7VtfL8fvgNfhz17qKRMjzQEXgbdpnHHHQRh54R9jP2RJ",
    "AVmoTthdrX6tKt4nDjco2D775W2YK3sDhxPcMmzUAmTY",
    "62qc2CNXwrYqQScmEdiZFFAnJR262PxWEuNQtxfafNgV",
    "JCRGumoE9Qi5BBgULTgdgTLjSgkCMSbF62ZZfGs84JeU",
    "CebN5WGQ4jvEPvsVU4EoHEpgzq1VV7AbicfhtW4xC9iM",
    # Photon
    "AVUCZyuT35YSuj4RH7fwiyPu82Djn2Hfg7y2ND2XcnZH",
    # BonkSwap
    "BUX7s2ef2htTGb2KKoPHWkmzxPj4nTWMWRgs5CSbQxf9",
    # Meteora
    "CdQTNULjDiTsvyR5UKjYBMqWvYpxXj6HY4m6atm2hErk",
})


def get_program_by_id(program_id: str) -> Optional[DexProgram]:
    return _PROGRAMS_BY_ID.get(program_id)


def get_program_name(program_id: str) -> str:
    program = _PROGRAMS_BY_ID.get(program_id)
    return program.name if program else ""


def is_dex_program(program_id: str) -> bool:
    return program_id in _PROGRAMS_BY_ID


def is_system_program(program_id: str) -> bool:
    return program_id in SYSTEM_PROGRAMS


def is_fee_account(account: str) -> bool:
    return account in FEE_ACCOUNTS
