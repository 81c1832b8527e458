from __future__ import annotations

from dataclasses import dataclass

from eth_utils import to_checksum_address

from ipcoin_launchpad.core.pool import ConcentratedLiquidityPool
from ipcoin_launchpad.core.utils.uniswap_v3_math import (
    liq_for_amt0,
    liq_for_amt1,
    sqrt_price_x96_from_tick,
)


@dataclass(frozen=True)
class PoolSide:
    """Maps a launched token's own price ticks onto its pool's tick space.

    Token ticks measure the token's price in the pairing asset. When the token
    sorts as token1 the pool quotes the inverse price, so ranges are mirrored
    across zero.
    """

    pool: ConcentratedLiquidityPool
    token: str

    @property
    def token_is_token0(self) -> bool:
        return to_checksum_address(self.token) == self.pool.token0

    @property
    def pairing_token(self) -> str:
        return self.pool.token1 if self.token_is_token0 else self.pool.token0

    def token_tick(self) -> int:
        _, tick = self.pool.slot0()
        return tick if self.token_is_token0 else -tick

    def to_pool_range(self, lower: int, upper: int) -> tuple[int, int]:
        if self.token_is_token0:
            return lower, upper
        return -upper, -lower

    def to_token_range(self, pool_lower: int, pool_upper: int) -> tuple[int, int]:
        # mirroring is its own inverse
        return self.to_pool_range(pool_lower, pool_upper)

    def split(self, amount0: int, amount1: int) -> tuple[int, int]:
        """Order pool amounts as ``(token_amount, pairing_amount)``."""
        if self.token_is_token0:
            return amount0, amount1
        return amount1, amount0

    def _liquidity(self, pool_lower: int, pool_upper: int, amount: int, as_token0: bool) -> int:
        sqrt_a = sqrt_price_x96_from_tick(pool_lower)
        sqrt_b = sqrt_price_x96_from_tick(pool_upper)
        if as_token0:
            return liq_for_amt0(sqrt_a, sqrt_b, amount)
        return liq_for_amt1(sqrt_a, sqrt_b, amount)

    def token_liquidity(self, pool_lower: int, pool_upper: int, amount: int) -> int:
        """Liquidity for a range funded only with the launched token."""
        return self._liquidity(pool_lower, pool_upper, amount, self.token_is_token0)

    def pairing_liquidity(self, pool_lower: int, pool_upper: int, amount: int) -> int:
        """Liquidity for a range funded only with the pairing asset."""
        return self._liquidity(pool_lower, pool_upper, amount, not self.token_is_token0)
