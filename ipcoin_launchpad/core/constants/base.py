ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

# Fee shares are expressed against this denominator (1_000_000 == 100%)
PRECISION = 1_000_000

# Uniswap V3 tick range
MIN_TICK = -887272
MAX_TICK = 887272
MIN_SQRT_RATIO = 4295128739
MAX_SQRT_RATIO = 1461446703485210103287273052203988822378723970342

DEFAULT_POOL_FEE = 3000
DEFAULT_TICK_SPACING = 60
TICK_SPACING: dict[int, int] = {100: 1, 500: 10, 3000: 60, 10000: 200}

MAX_LIQUIDITY_TIERS = 4

DEFAULT_VESTING_DURATION = 90 * 24 * 60 * 60

MANTISSA = 10**18
DEFAULT_TOKEN_SUPPLY = 1_000_000_000 * MANTISSA

MAX_UINT128 = 2**128 - 1
