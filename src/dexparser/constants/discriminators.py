"""
Instruction discriminators.

Anchor programs prefix instruction data with 8 bytes of
sha256("global:<name>"). Events emitted through self-CPI carry the 8-byte
event-ix tag followed by the 8-byte event discriminator, 16 bytes in total.
Native programs use a single leading byte.
"""

from typing import Tuple

EVENT_IX_TAG = bytes([228, 69, 165, 46, 81, 203, 154, 29])


def _event(*suffix: int) -> bytes:
    return EVENT_IX_TAG + bytes(suffix)


class JUPITER:
    ROUTE_EVENT = _event(64, 198, 205, 232, 38, 8, 113, 226)
    ROUTE = bytes([229, 23, 203, 151, 122, 227, 173, 42])
    ROUTE_EXACT_OUT = bytes([208, 51, 239, 151, 123, 43, 237, 92])
    SHARED_ACCOUNTS_ROUTE = bytes([193, 32, 155, 51, 65, 214, 156, 129])
    SHARED_ACCOUNTS_EXACT_OUT_ROUTE = bytes([176, 209, 105, 168, 154, 125, 69, 62])


class PUMPFUN:
    CREATE = bytes([24, 30, 200, 40, 5, 28, 7, 119])
    MIGRATE = bytes([155, 234, 231, 146, 236, 158, 162, 30])
    BUY = bytes([102, 6, 61, 18, 1, 218, 235, 234])
    SELL = bytes([51, 230, 133, 164, 1, 127, 131, 173])
    TRADE_EVENT = _event(189, 219, 127, 211, 78, 230, 97, 238)
    CREATE_EVENT = _event(27, 114, 169, 77, 222, 235, 99, 118)
    COMPLETE_EVENT = _event(95, 114, 97, 156, 212, 46, 152, 8)
    MIGRATE_EVENT = _event(189, 233, 93, 185, 92, 148, 234, 148)


class PUMPSWAP:
    CREATE_POOL = bytes([233, 146, 209, 142, 207, 104, 64, 188])
    ADD_LIQUIDITY = bytes([242, 35, 198, 137, 82, 225, 242, 182])
    REMOVE_LIQUIDITY = bytes([183, 18, 70, 156, 148, 109, 161, 34])
    BUY = bytes([102, 6, 61, 18, 1, 218, 235, 234])
    SELL = bytes([51, 230, 133, 164, 1, 127, 131, 173])
    CREATE_POOL_EVENT = _event(177, 49, 12, 210, 160, 118, 167, 116)
    ADD_LIQUIDITY_EVENT = _event(120, 248, 61, 83, 31, 142, 107, 144)
    REMOVE_LIQUIDITY_EVENT = _event(22, 9, 133, 26, 160, 44, 71, 192)
    BUY_EVENT = _event(103, 244, 82, 31, 44, 245, 119, 119)
    SELL_EVENT = _event(62, 47, 55, 10, 165, 3, 220, 42)


class RAYDIUM:
    CREATE = bytes([1])
    ADD_LIQUIDITY = bytes([3])
    REMOVE_LIQUIDITY = bytes([4])
    SWAP = bytes([9])
    SWAP_EXACT_OUT = bytes([11])


class RAYDIUM_CL:
    OPEN_POSITION = bytes([135, 128, 47, 77, 15, 152, 240, 49])
    OPEN_POSITION_V2 = bytes([77, 184, 74, 214, 112, 86, 241, 199])
    CREATE_POOL = bytes([233, 146, 209, 142, 207, 104, 64, 188])
    INCREASE_LIQUIDITY = bytes([46, 156, 243, 118, 13, 205, 251, 178])
    INCREASE_LIQUIDITY_V2 = bytes([133, 29, 89, 223, 69, 238, 176, 10])
    DECREASE_LIQUIDITY = bytes([160, 38, 208, 111, 104, 91, 44, 1])
    DECREASE_LIQUIDITY_V2 = bytes([58, 127, 188, 62, 79, 82, 196, 96])
    SWAP = bytes([248, 198, 158, 145, 225, 117, 135, 200])
    SWAP_V2 = bytes([43, 4, 237, 11, 26, 201, 30, 98])

    LIQUIDITY: Tuple[bytes, ...] = (
        OPEN_POSITION, OPEN_POSITION_V2, CREATE_POOL,
        INCREASE_LIQUIDITY, INCREASE_LIQUIDITY_V2,
        DECREASE_LIQUIDITY, DECREASE_LIQUIDITY_V2,
    )


class RAYDIUM_CPMM:
    CREATE = bytes([175, 175, 109, 31, 13, 152, 155, 237])
    ADD_LIQUIDITY = bytes([242, 35, 198, 137, 82, 225, 242, 182])
    REMOVE_LIQUIDITY = bytes([183, 18, 70, 156, 148, 109, 161, 34])

    LIQUIDITY: Tuple[bytes, ...] = (CREATE, ADD_LIQUIDITY, REMOVE_LIQUIDITY)


class METEORA_DLMM:
    ADD_LIQUIDITY: Tuple[bytes, ...] = (
        bytes([181, 157, 89, 67, 143, 182, 52, 72]),    # addLiquidity
        bytes([7, 3, 150, 127, 148, 40, 61, 200]),      # addLiquidityByStrategy
        bytes([3, 221, 149, 218, 111, 141, 118, 213]),  # addLiquidityByStrategy2
        bytes([41, 5, 238, 175, 100, 225, 6, 205]),     # addLiquidityByStrategyOneSide
        bytes([94, 155, 103, 151, 70, 95, 220, 165]),   # addLiquidityOneSide
        bytes([161, 194, 103, 84, 171, 71, 250, 154]),  # addLiquidityOneSidePrecise
        bytes([28, 140, 238, 99, 231, 162, 21, 149]),   # addLiquidityByWeight
    )
    REMOVE_LIQUIDITY: Tuple[bytes, ...] = (
        bytes([80, 85, 209, 72, 24, 206, 177, 108]),    # removeLiquidity
        bytes([26, 82, 102, 152, 240, 74, 105, 26]),    # removeLiquidityByRange
        bytes([204, 2, 195, 145, 53, 145, 145, 205]),   # removeLiquidityByRange2
        bytes([10, 51, 61, 35, 112, 105, 24, 85]),      # removeAllLiquidity
        bytes([169, 32, 79, 137, 136, 232, 70, 137]),   # claimFee
        bytes([112, 191, 101, 171, 28, 144, 127, 187]),  # claimFeeV2
    )


class METEORA_DAMM:
    CREATE = bytes([7, 166, 138, 171, 206, 171, 236, 244])
    ADD_LIQUIDITY = bytes([168, 227, 50, 62, 189, 171, 84, 176])
    REMOVE_LIQUIDITY = bytes([133, 109, 44, 179, 56, 238, 114, 33])
    ADD_IMBALANCE_LIQUIDITY = bytes([79, 35, 122, 84, 173, 15, 93, 191])

    LIQUIDITY: Tuple[bytes, ...] = (CREATE, ADD_LIQUIDITY, REMOVE_LIQUIDITY, ADD_IMBALANCE_LIQUIDITY)


class METEORA_DAMM_V2:
    INITIALIZE_POOL = bytes([95, 180, 10, 172, 84, 174, 232, 40])
    INITIALIZE_CUSTOM_POOL = bytes([20, 161, 241, 24, 189, 221, 180, 2])
    INITIALIZE_POOL_WITH_DYNAMIC_CONFIG = bytes([149, 82, 72, 197, 253, 252, 68, 15])
    ADD_LIQUIDITY = bytes([181, 157, 89, 67, 143, 182, 52, 72])
    CLAIM_POSITION_FEE = bytes([180, 38, 154, 17, 133, 33, 162, 211])
    REMOVE_LIQUIDITY = bytes([80, 85, 209, 72, 24, 206, 177, 108])
    REMOVE_ALL_LIQUIDITY = bytes([10, 51, 61, 35, 112, 105, 24, 85])

    LIQUIDITY: Tuple[bytes, ...] = (
        INITIALIZE_POOL, INITIALIZE_CUSTOM_POOL, INITIALIZE_POOL_WITH_DYNAMIC_CONFIG,
        ADD_LIQUIDITY, CLAIM_POSITION_FEE, REMOVE_LIQUIDITY, REMOVE_ALL_LIQUIDITY,
    )


class ORCA:
    CREATE = bytes([242, 29, 134, 48, 58, 110, 14, 60])
    CREATE2 = bytes([212, 47, 95, 92, 114, 102, 131, 250])
    ADD_LIQUIDITY = bytes([46, 156, 243, 118, 13, 205, 251, 178])
    ADD_LIQUIDITY2 = bytes([133, 29, 89, 223, 69, 238, 176, 10])
    REMOVE_LIQUIDITY = bytes([160, 38, 208, 111, 104, 91, 44, 1])
    OTHER1 = bytes([164, 152, 207, 99, 30, 186, 19, 182])
    OTHER2 = bytes([70, 5, 132, 87, 86, 235, 177, 34])

    LIQUIDITY: Tuple[bytes, ...] = (
        CREATE, CREATE2, ADD_LIQUIDITY, ADD_LIQUIDITY2, REMOVE_LIQUIDITY, OTHER1, OTHER2,
    )


class SOLFI:
    SWAP = bytes([0x07])


class GOONFI:
    SWAP = bytes([0x02])


class OBRIC:
    SWAP = bytes([248, 198, 158, 145, 225, 117, 135, 200])
    SWAP_X_TO_Y = bytes([143, 190, 90, 218, 196, 30, 51, 222])
    SWAP_Y_TO_X = bytes([220, 117, 232, 239, 48, 247, 211, 180])

    SWAPS: Tuple[bytes, ...] = (SWAP, SWAP_X_TO_Y, SWAP_Y_TO_X)


class HUMIDIFI:
    # Fixed XOR key applied over the whole instruction payload
    XOR_KEY = bytes([58, 255, 47, 255, 226, 186, 235, 195])
    SWAP = bytes([248, 198, 158, 145, 225, 117, 135, 200])


class JUPITER_DCA:
    FILLED = _event(134, 4, 17, 63, 221, 45, 177, 173)
    CLOSE_DCA = bytes([22, 7, 33, 98, 168, 183, 34, 243])
    OPEN_DCA = bytes([36, 65, 185, 54, 1, 210, 100, 163])
    OPEN_DCA_V2 = bytes([142, 119, 43, 109, 162, 52, 11, 177])


class JUPITER_VA:
    FILL_EVENT = _event(78, 225, 199, 154, 86, 219, 224, 169)
    OPEN_EVENT = _event(104, 220, 224, 191, 87, 241, 132, 61)
    WITHDRAW_EVENT = _event(192, 241, 201, 217, 70, 150, 90, 247)


class JUPITER_LIMIT_ORDER_V2:
    TRADE_EVENT = _event(189, 219, 127, 211, 78, 230, 97, 238)
    CREATE_ORDER_EVENT = _event(49, 142, 72, 166, 230, 29, 84, 84)
    # fill instruction whose accounts 3 and 4 are the input and output token accounts
    UNKNOWN = bytes([232, 122, 115, 25, 199, 143, 136, 162])
    FLASH_FILL_ORDER = bytes([252, 104, 18, 134, 164, 78, 18, 140])
    CANCEL_ORDER = bytes([95, 129, 237, 240, 8, 49, 223, 132])


class RAYDIUM_LCP:
    CREATE_EVENT = _event(151, 215, 226, 9, 118, 161, 115, 174)
    TRADE_EVENT = _event(189, 219, 127, 211, 78, 230, 97, 238)
    INITIALIZE = bytes([175, 175, 109, 31, 13, 152, 155, 237])
    BUY_EXACT_IN = bytes([250, 234, 13, 123, 213, 156, 19, 236])
    BUY_EXACT_OUT = bytes([24, 211, 116, 40, 105, 3, 153, 56])
    SELL_EXACT_IN = bytes([149, 39, 222, 155, 211, 124, 152, 26])
    SELL_EXACT_OUT = bytes([95, 200, 71, 34, 8, 9, 11, 166])
    MIGRATE_TO_AMM = bytes([207, 82, 192, 145, 254, 207, 145, 223])
    MIGRATE_TO_CPSWAP = bytes([136, 92, 200, 103, 28, 218, 144, 140])

    TRADES: Tuple[bytes, ...] = (BUY_EXACT_IN, BUY_EXACT_OUT, SELL_EXACT_IN, SELL_EXACT_OUT)


class METEORA_DBC:
    SWAP = bytes([248, 198, 158, 145, 225, 117, 135, 200])
    SWAP_V2 = bytes([65, 75, 63, 76, 235, 91, 91, 136])
    INITIALIZE_VIRTUAL_POOL_WITH_SPL = bytes([140, 85, 215, 176, 102, 54, 104, 79])
    INITIALIZE_VIRTUAL_POOL_WITH_TOKEN2022 = bytes([169, 118, 51, 78, 145, 110, 220, 155])
    MIGRATE_DAMM = bytes([27, 1, 48, 22, 180, 63, 118, 217])
    MIGRATE_DAMM_V2 = bytes([156, 169, 230, 103, 53, 228, 80, 64])


class BOOPFUN:
    CREATE = bytes([84, 52, 204, 228, 24, 140, 234, 75])
    DEPLOY = bytes([180, 89, 199, 76, 168, 236, 217, 138])
    COMPLETE = bytes([45, 235, 225, 181, 17, 218, 64, 130])
    BUY = bytes([138, 127, 14, 91, 38, 87, 115, 105])
    SELL = bytes([109, 61, 40, 187, 230, 176, 135, 174])


class MOONIT:
    BUY = bytes([102, 6, 61, 18, 1, 218, 235, 234])
    SELL = bytes([51, 230, 133, 164, 1, 127, 131, 173])
    CREATE = bytes([3, 44, 164, 184, 123, 13, 245, 179])
    MIGRATE = bytes([42, 229, 10, 231, 189, 62, 193, 174])


class HEAVEN:
    BUY = bytes([102, 6, 61, 18, 1, 218, 235, 234])
    SELL = bytes([51, 230, 133, 164, 1, 127, 131, 173])
    CREATE_POOL = bytes([42, 43, 126, 56, 231, 10, 208, 53])


class SUGAR:
    BUY_EXACT_IN = bytes([250, 234, 13, 123, 213, 156, 19, 236])
    BUY_EXACT_OUT = bytes([24, 211, 116, 40, 105, 3, 153, 56])
    BUY_MAX_OUT = bytes([96, 177, 203, 117, 183, 65, 196, 177])
    SELL_EXACT_IN = bytes([149, 39, 222, 155, 211, 124, 152, 26])
    SELL_EXACT_OUT = bytes([95, 200, 71, 34, 8, 9, 11, 166])
    CREATE = bytes([24, 30, 200, 40, 5, 28, 7, 119])

    BUYS: Tuple[bytes, ...] = (BUY_EXACT_IN, BUY_EXACT_OUT, BUY_MAX_OUT)
    SELLS: Tuple[bytes, ...] = (SELL_EXACT_IN, SELL_EXACT_OUT)
