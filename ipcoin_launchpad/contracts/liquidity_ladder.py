"""Multi-tier liquidity ladder.

A launched token's supply is split across up to four one-sided positions on
ascending tick ranges above the launch price. Each harvest withdraws the tier
the price currently sits in; proceeds from the first tier roll forward into
the second tier's range, proceeds from any other tier are partly burned.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from loguru import logger

from ipcoin_launchpad.contracts.pool_side import PoolSide
from ipcoin_launchpad.core.adapters.models import PositionCollected, TierOpened
from ipcoin_launchpad.core.chain import Contract
from ipcoin_launchpad.core.constants import MAX_LIQUIDITY_TIERS
from ipcoin_launchpad.core.errors import ConfigurationError, NoTiersConfiguredError
from ipcoin_launchpad.core.utils.uniswap_v3_math import max_usable_tick, min_usable_tick


@dataclass(frozen=True)
class LiquidityTier:
    lower_tick: int
    upper_tick: int
    allocation: int = 0

    def contains(self, tick: int) -> bool:
        return self.lower_tick <= tick < self.upper_tick


def validate_start_ticks(start_ticks: Sequence[int], spacing: int) -> list[int]:
    ticks = [int(t) for t in start_ticks]
    if not ticks:
        raise ConfigurationError("at least one tier is required")
    if len(ticks) > MAX_LIQUIDITY_TIERS:
        raise ConfigurationError(
            f"at most {MAX_LIQUIDITY_TIERS} tiers are supported, got {len(ticks)}"
        )
    for tick in ticks:
        if tick % spacing:
            raise ConfigurationError(f"tick {tick} is not a multiple of {spacing}")
    for prev, cur in zip(ticks, ticks[1:]):
        if cur <= prev:
            raise ConfigurationError(f"ticks must be strictly ascending: {ticks}")
    if ticks[0] < min_usable_tick(spacing):
        raise ConfigurationError(f"first tick {ticks[0]} below {min_usable_tick(spacing)}")
    if ticks[-1] >= max_usable_tick(spacing):
        raise ConfigurationError(
            f"last tick {ticks[-1]} leaves no room below {max_usable_tick(spacing)}"
        )
    return ticks


def validate_allocations(
    allocations: Sequence[int], n_tiers: int, precision: int
) -> list[int]:
    allocs = [int(a) for a in allocations]
    if len(allocs) != n_tiers:
        raise ConfigurationError(
            f"{len(allocs)} allocations given for {n_tiers} tiers"
        )
    if any(a < 0 for a in allocs):
        raise ConfigurationError("allocations must be non-negative")
    if sum(allocs) > precision:
        raise ConfigurationError(f"allocations sum to {sum(allocs)} > {precision}")
    return allocs


def tiers_from_ticks(
    start_ticks: Sequence[int],
    spacing: int,
    allocations: Sequence[int] | None = None,
) -> list[LiquidityTier]:
    """Bound each tier by the next start tick; the last one by the max usable tick."""
    if not start_ticks:
        raise NoTiersConfiguredError("token has no liquidity tiers")
    uppers = [*start_ticks[1:], max_usable_tick(spacing)]
    allocs = list(allocations) if allocations else [0] * len(start_ticks)
    return [
        LiquidityTier(lower_tick=lo, upper_tick=hi, allocation=a)
        for lo, hi, a in zip(start_ticks, uppers, allocs, strict=True)
    ]


def active_tier_index(tiers: Sequence[LiquidityTier], tick: int) -> int:
    """First tier whose range holds ``tick``; prices under the ladder map to tier 0."""
    for i, tier in enumerate(tiers):
        if tier.contains(tick):
            return i
    if tiers and tick >= tiers[-1].upper_tick:
        return len(tiers) - 1
    return 0


class LiquidityLadder:
    """Opens and unwinds ladder positions on behalf of ``owner``.

    ``owner`` holds the positions and must answer the pool's mint callback.
    """

    def __init__(self, owner: Contract, precision: int):
        self.owner = owner
        self.precision = int(precision)
        self.logger = logger.bind(contract="LiquidityLadder")

    def open_position(
        self,
        side: PoolSide,
        lower_tick: int,
        upper_tick: int,
        token_amount: int,
        data: Any = None,
    ) -> tuple[int, int]:
        """Deposit ``token_amount`` one-sided over a token-terms range.

        Returns ``(liquidity, token_paid)``; a zero liquidity is a no-op.
        """
        pool_lower, pool_upper = side.to_pool_range(lower_tick, upper_tick)
        liquidity = side.token_liquidity(pool_lower, pool_upper, token_amount)
        if liquidity <= 0:
            self.logger.debug(
                f"Skipping empty tier [{lower_tick}, {upper_tick}) for {side.token}"
            )
            return 0, 0
        amount0, amount1 = side.pool.mint(
            self.owner, self.owner.address, pool_lower, pool_upper, liquidity, data
        )
        token_paid, _ = side.split(amount0, amount1)
        self.owner.emit(
            TierOpened(
                token=side.token,
                pool=side.pool.address,
                tick_lower=pool_lower,
                tick_upper=pool_upper,
                liquidity=liquidity,
                token_amount=token_paid,
            )
        )
        self.logger.info(
            f"Opened [{lower_tick}, {upper_tick}) for {side.token}: "
            f"{token_paid} tokens, liquidity {liquidity}"
        )
        return liquidity, token_paid

    def open_tiers(
        self, side: PoolSide, tiers: Sequence[LiquidityTier], supply: int, data: Any = None
    ) -> int:
        """Fund every tier from ``supply``; returns the total tokens deposited."""
        deposited = 0
        for tier in tiers:
            amount = supply * tier.allocation // self.precision
            _, paid = self.open_position(
                side, tier.lower_tick, tier.upper_tick, amount, data
            )
            deposited += paid
        return deposited

    def accrued_fees(self, side: PoolSide, tier: LiquidityTier) -> tuple[int, int]:
        """Poke the tier's position and return its owed ``(token, pairing)``."""
        pool_lower, pool_upper = side.to_pool_range(tier.lower_tick, tier.upper_tick)
        position = side.pool.position(self.owner.address, pool_lower, pool_upper)
        if position.liquidity > 0:
            side.pool.burn(self.owner.address, pool_lower, pool_upper, 0)
            position = side.pool.position(self.owner.address, pool_lower, pool_upper)
        return side.split(position.tokens_owed0, position.tokens_owed1)

    def withdraw(self, side: PoolSide, tier: LiquidityTier) -> tuple[int, int]:
        """Remove all liquidity from the tier and collect everything owed.

        Returns ``(token_amount, pairing_amount)``.
        """
        pool_lower, pool_upper = side.to_pool_range(tier.lower_tick, tier.upper_tick)
        position = side.pool.position(self.owner.address, pool_lower, pool_upper)
        if position.liquidity > 0:
            side.pool.burn(self.owner.address, pool_lower, pool_upper, position.liquidity)
        amount0, amount1 = side.pool.collect(
            self.owner.address, self.owner.address, pool_lower, pool_upper
        )
        if amount0 or amount1:
            self.owner.emit(
                PositionCollected(
                    pool=side.pool.address,
                    tick_lower=pool_lower,
                    tick_upper=pool_upper,
                    amount0=amount0,
                    amount1=amount1,
                )
            )
        return side.split(amount0, amount1)

    def promote(
        self,
        side: PoolSide,
        tiers: Sequence[LiquidityTier],
        token_amount: int,
        data: Any = None,
    ) -> int:
        """Redeploy first-tier proceeds over ``[tier1.upper, tier2.upper)``."""
        _, paid = self.open_position(
            side, tiers[0].upper_tick, tiers[1].upper_tick, token_amount, data
        )
        return paid
