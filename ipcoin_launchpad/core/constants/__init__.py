from ipcoin_launchpad.core.constants.base import (
    DEFAULT_POOL_FEE,
    DEFAULT_TICK_SPACING,
    DEFAULT_TOKEN_SUPPLY,
    DEFAULT_VESTING_DURATION,
    MANTISSA,
    MAX_LIQUIDITY_TIERS,
    MAX_SQRT_RATIO,
    MAX_TICK,
    MAX_UINT128,
    MIN_SQRT_RATIO,
    MIN_TICK,
    PRECISION,
    TICK_SPACING,
    ZERO_ADDRESS,
)

__all__ = [
    "DEFAULT_POOL_FEE",
    "DEFAULT_TICK_SPACING",
    "DEFAULT_TOKEN_SUPPLY",
    "DEFAULT_VESTING_DURATION",
    "MANTISSA",
    "MAX_LIQUIDITY_TIERS",
    "MAX_SQRT_RATIO",
    "MAX_TICK",
    "MAX_UINT128",
    "MIN_SQRT_RATIO",
    "MIN_TICK",
    "PRECISION",
    "TICK_SPACING",
    "ZERO_ADDRESS",
]
