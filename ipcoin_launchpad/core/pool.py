"""Concentrated liquidity pool (Uniswap V3 style).

Positions are keyed by ``(owner, tick_lower, tick_upper)``. Minting and
swapping pull payment through callbacks on the calling contract:

- ``uniswap_v3_mint_callback(pool, amount0_owed, amount1_owed, data)``
- ``uniswap_v3_swap_callback(pool, amount0_delta, amount1_delta, data)``

and the pool checks its own balances afterwards, as the real contract does.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol

from eth_utils import to_checksum_address

from ipcoin_launchpad.core.chain import Chain, Contract, atomic
from ipcoin_launchpad.core.constants import (
    MAX_SQRT_RATIO,
    MAX_TICK,
    MAX_UINT128,
    MIN_SQRT_RATIO,
    MIN_TICK,
    TICK_SPACING,
)
from ipcoin_launchpad.core.errors import (
    ConfigurationError,
    PoolError,
    PoolLockedError,
    TickRangeError,
)
from ipcoin_launchpad.core.tokens import TokenLedger
from ipcoin_launchpad.core.utils.uniswap_v3_math import (
    MASK_256,
    Q128,
    compute_swap_step,
    get_amount0_delta,
    get_amount1_delta,
    sqrt_price_x96_from_tick,
    tick_at_sqrt_price_x96,
)


class MintCallback(Protocol):
    address: str

    def uniswap_v3_mint_callback(
        self, pool: str, amount0_owed: int, amount1_owed: int, data: Any
    ) -> None: ...


class SwapCallback(Protocol):
    address: str

    def uniswap_v3_swap_callback(
        self, pool: str, amount0_delta: int, amount1_delta: int, data: Any
    ) -> None: ...


@dataclass
class TickInfo:
    liquidity_gross: int = 0
    liquidity_net: int = 0
    fee_growth_outside0_x128: int = 0
    fee_growth_outside1_x128: int = 0


@dataclass
class Position:
    liquidity: int = 0
    fee_growth_inside0_last_x128: int = 0
    fee_growth_inside1_last_x128: int = 0
    tokens_owed0: int = 0
    tokens_owed1: int = 0


@dataclass
class PoolState:
    sqrt_price_x96: int = 0
    tick: int = 0
    liquidity: int = 0
    fee_growth_global0_x128: int = 0
    fee_growth_global1_x128: int = 0
    ticks: dict[int, TickInfo] = field(default_factory=dict)
    positions: dict[tuple[str, int, int], Position] = field(default_factory=dict)


class ConcentratedLiquidityPool(Contract):
    def __init__(
        self,
        chain: Chain,
        ledger: TokenLedger,
        token_a: str,
        token_b: str,
        fee: int,
        *,
        tick_spacing: int | None = None,
    ):
        super().__init__(chain, label=f"pool:{token_a}:{token_b}:{fee}")
        t0 = to_checksum_address(token_a)
        t1 = to_checksum_address(token_b)
        if t0 == t1:
            raise ConfigurationError("pool tokens must differ")
        if int(t0, 16) > int(t1, 16):
            t0, t1 = t1, t0
        self.token0 = t0
        self.token1 = t1
        self.fee = int(fee)
        spacing = tick_spacing if tick_spacing is not None else TICK_SPACING.get(self.fee)
        if not spacing or spacing <= 0:
            raise ConfigurationError(f"No tick spacing for fee tier {fee}")
        self.tick_spacing = int(spacing)
        self.ledger = ledger
        self._locked = False

    # ── state access ─────────────────────────────────────────────────────

    @property
    def _state(self) -> PoolState:
        store = self._store("state")
        if "pool" not in store:
            store["pool"] = PoolState()
        return store["pool"]

    @property
    def initialized(self) -> bool:
        return self._state.sqrt_price_x96 != 0

    def slot0(self) -> tuple[int, int]:
        state = self._state
        return state.sqrt_price_x96, state.tick

    @property
    def liquidity(self) -> int:
        return self._state.liquidity

    def position(self, owner: str, tick_lower: int, tick_upper: int) -> Position:
        key = (to_checksum_address(owner), int(tick_lower), int(tick_upper))
        return self._state.positions.get(key) or Position()

    def balance0(self) -> int:
        return self.ledger.balance_of(self.token0, self.address)

    def balance1(self) -> int:
        return self.ledger.balance_of(self.token1, self.address)

    def _lock(self) -> None:
        if self._locked:
            raise PoolLockedError("pool is locked")
        if not self.initialized:
            raise PoolError("pool is not initialized", code="not_initialized")
        self._locked = True

    def _unlock(self) -> None:
        self._locked = False

    # ── initialize ───────────────────────────────────────────────────────

    @atomic
    def initialize(self, sqrt_price_x96: int) -> int:
        if self.initialized:
            raise PoolError("pool already initialized", code="already_initialized")
        tick = tick_at_sqrt_price_x96(int(sqrt_price_x96))
        state = self._state
        state.sqrt_price_x96 = int(sqrt_price_x96)
        state.tick = tick
        self.logger.debug(f"Initialized pool {self.address} at tick {tick}")
        return tick

    # ── liquidity ────────────────────────────────────────────────────────

    def _check_ticks(self, tick_lower: int, tick_upper: int) -> None:
        if tick_lower >= tick_upper:
            raise TickRangeError(f"tick_lower {tick_lower} >= tick_upper {tick_upper}")
        if tick_lower < MIN_TICK or tick_upper > MAX_TICK:
            raise TickRangeError(
                f"range [{tick_lower}, {tick_upper}) outside [{MIN_TICK}, {MAX_TICK}]"
            )
        if tick_lower % self.tick_spacing or tick_upper % self.tick_spacing:
            raise TickRangeError(
                f"range [{tick_lower}, {tick_upper}) not aligned to {self.tick_spacing}"
            )

    def _fee_growth_inside(self, tick_lower: int, tick_upper: int) -> tuple[int, int]:
        state = self._state
        lower = state.ticks.get(tick_lower) or TickInfo()
        upper = state.ticks.get(tick_upper) or TickInfo()
        g0 = state.fee_growth_global0_x128
        g1 = state.fee_growth_global1_x128

        if state.tick >= tick_lower:
            below0, below1 = lower.fee_growth_outside0_x128, lower.fee_growth_outside1_x128
        else:
            below0 = g0 - lower.fee_growth_outside0_x128
            below1 = g1 - lower.fee_growth_outside1_x128
        if state.tick < tick_upper:
            above0, above1 = upper.fee_growth_outside0_x128, upper.fee_growth_outside1_x128
        else:
            above0 = g0 - upper.fee_growth_outside0_x128
            above1 = g1 - upper.fee_growth_outside1_x128

        return (g0 - below0 - above0) & MASK_256, (g1 - below1 - above1) & MASK_256

    def _update_tick(self, tick: int, liquidity_delta: int, upper: bool) -> None:
        state = self._state
        info = state.ticks.get(tick)
        if info is None:
            info = TickInfo()
            # by convention all growth before initialization happened below the tick
            if tick <= state.tick:
                info.fee_growth_outside0_x128 = state.fee_growth_global0_x128
                info.fee_growth_outside1_x128 = state.fee_growth_global1_x128
            state.ticks[tick] = info
        info.liquidity_gross += liquidity_delta
        info.liquidity_net += -liquidity_delta if upper else liquidity_delta

    def _clear_tick_if_unused(self, tick: int) -> None:
        info = self._state.ticks.get(tick)
        if info is not None and info.liquidity_gross == 0:
            del self._state.ticks[tick]

    def _modify_position(
        self, owner: str, tick_lower: int, tick_upper: int, liquidity_delta: int
    ) -> tuple[int, int]:
        self._check_ticks(tick_lower, tick_upper)
        state = self._state
        key = (to_checksum_address(owner), tick_lower, tick_upper)
        position = state.positions.get(key)
        if position is None:
            if liquidity_delta <= 0:
                raise PoolError("no position to modify", code="NP")
            position = Position()
            state.positions[key] = position
        elif liquidity_delta == 0 and position.liquidity == 0:
            raise PoolError("no liquidity to poke", code="NP")
        if position.liquidity + liquidity_delta < 0:
            raise PoolError("burn exceeds position liquidity", code="LS")

        if liquidity_delta != 0:
            self._update_tick(tick_lower, liquidity_delta, upper=False)
            self._update_tick(tick_upper, liquidity_delta, upper=True)

        inside0, inside1 = self._fee_growth_inside(tick_lower, tick_upper)
        owed0 = (
            ((inside0 - position.fee_growth_inside0_last_x128) & MASK_256)
            * position.liquidity
        ) // Q128
        owed1 = (
            ((inside1 - position.fee_growth_inside1_last_x128) & MASK_256)
            * position.liquidity
        ) // Q128
        position.liquidity += liquidity_delta
        position.fee_growth_inside0_last_x128 = inside0
        position.fee_growth_inside1_last_x128 = inside1
        position.tokens_owed0 += owed0
        position.tokens_owed1 += owed1

        if liquidity_delta < 0:
            self._clear_tick_if_unused(tick_lower)
            self._clear_tick_if_unused(tick_upper)

        if liquidity_delta == 0:
            return 0, 0

        round_up = liquidity_delta > 0
        magnitude = abs(liquidity_delta)
        sqrt_lower = sqrt_price_x96_from_tick(tick_lower)
        sqrt_upper = sqrt_price_x96_from_tick(tick_upper)
        amount0 = amount1 = 0
        if state.tick < tick_lower:
            amount0 = get_amount0_delta(sqrt_lower, sqrt_upper, magnitude, round_up=round_up)
        elif state.tick < tick_upper:
            amount0 = get_amount0_delta(
                state.sqrt_price_x96, sqrt_upper, magnitude, round_up=round_up
            )
            amount1 = get_amount1_delta(
                sqrt_lower, state.sqrt_price_x96, magnitude, round_up=round_up
            )
            state.liquidity += liquidity_delta
        else:
            amount1 = get_amount1_delta(sqrt_lower, sqrt_upper, magnitude, round_up=round_up)
        return amount0, amount1

    @atomic
    def mint(
        self,
        sender: MintCallback,
        recipient: str,
        tick_lower: int,
        tick_upper: int,
        amount: int,
        data: Any = None,
    ) -> tuple[int, int]:
        if amount <= 0:
            raise PoolError("liquidity must be positive", code="zero_liquidity")
        self._lock()
        try:
            amount0, amount1 = self._modify_position(
                recipient, int(tick_lower), int(tick_upper), int(amount)
            )
            before0 = self.balance0() if amount0 else 0
            before1 = self.balance1() if amount1 else 0
            sender.uniswap_v3_mint_callback(self.address, amount0, amount1, data)
            if amount0 and self.balance0() < before0 + amount0:
                raise PoolError("mint callback underpaid token0", code="M0")
            if amount1 and self.balance1() < before1 + amount1:
                raise PoolError("mint callback underpaid token1", code="M1")
        finally:
            self._unlock()
        return amount0, amount1

    @atomic
    def burn(
        self, owner: str, tick_lower: int, tick_upper: int, amount: int
    ) -> tuple[int, int]:
        if amount < 0:
            raise PoolError("burn amount must be non-negative", code="negative_burn")
        self._lock()
        try:
            amount0, amount1 = self._modify_position(
                owner, int(tick_lower), int(tick_upper), -int(amount)
            )
            if amount0 or amount1:
                position = self._state.positions[
                    (to_checksum_address(owner), int(tick_lower), int(tick_upper))
                ]
                position.tokens_owed0 += amount0
                position.tokens_owed1 += amount1
        finally:
            self._unlock()
        return amount0, amount1

    @atomic
    def collect(
        self,
        owner: str,
        recipient: str,
        tick_lower: int,
        tick_upper: int,
        amount0_requested: int = MAX_UINT128,
        amount1_requested: int = MAX_UINT128,
    ) -> tuple[int, int]:
        self._lock()
        try:
            key = (to_checksum_address(owner), int(tick_lower), int(tick_upper))
            position = self._state.positions.get(key)
            if position is None:
                return 0, 0
            amount0 = min(int(amount0_requested), position.tokens_owed0)
            amount1 = min(int(amount1_requested), position.tokens_owed1)
            if amount0:
                position.tokens_owed0 -= amount0
                self.ledger.transfer(self.token0, self.address, recipient, amount0)
            if amount1:
                position.tokens_owed1 -= amount1
                self.ledger.transfer(self.token1, self.address, recipient, amount1)
            if (
                position.liquidity == 0
                and position.tokens_owed0 == 0
                and position.tokens_owed1 == 0
            ):
                del self._state.positions[key]
        finally:
            self._unlock()
        return amount0, amount1

    # ── swap ─────────────────────────────────────────────────────────────

    def _next_initialized_tick(self, tick: int, zero_for_one: bool) -> tuple[int, bool]:
        ticks = self._state.ticks
        if zero_for_one:
            below = [t for t in ticks if t <= tick]
            return (max(below), True) if below else (MIN_TICK, False)
        above = [t for t in ticks if t > tick]
        return (min(above), True) if above else (MAX_TICK, False)

    def _cross(self, tick: int, growth0: int, growth1: int) -> int:
        info = self._state.ticks[tick]
        info.fee_growth_outside0_x128 = (growth0 - info.fee_growth_outside0_x128) & MASK_256
        info.fee_growth_outside1_x128 = (growth1 - info.fee_growth_outside1_x128) & MASK_256
        return info.liquidity_net

    @atomic
    def swap(
        self,
        sender: SwapCallback,
        recipient: str,
        zero_for_one: bool,
        amount_specified: int,
        sqrt_price_limit_x96: int | None = None,
        data: Any = None,
    ) -> tuple[int, int]:
        """Swap against the pool; returns signed ``(amount0, amount1)`` deltas
        from the pool's point of view (positive means paid in)."""
        if amount_specified == 0:
            raise PoolError("amount must be non-zero", code="AS")
        self._lock()
        try:
            state = self._state
            if sqrt_price_limit_x96 is None:
                sqrt_price_limit_x96 = (
                    MIN_SQRT_RATIO + 1 if zero_for_one else MAX_SQRT_RATIO - 1
                )
            if zero_for_one:
                ok = MIN_SQRT_RATIO < sqrt_price_limit_x96 < state.sqrt_price_x96
            else:
                ok = state.sqrt_price_x96 < sqrt_price_limit_x96 < MAX_SQRT_RATIO
            if not ok:
                raise PoolError("invalid price limit", code="SPL")

            exact_input = amount_specified > 0
            remaining = int(amount_specified)
            calculated = 0
            sqrt_price = state.sqrt_price_x96
            tick = state.tick
            liquidity = state.liquidity
            growth0 = state.fee_growth_global0_x128
            growth1 = state.fee_growth_global1_x128

            while remaining != 0 and sqrt_price != sqrt_price_limit_x96:
                step_start = sqrt_price
                tick_next, initialized = self._next_initialized_tick(tick, zero_for_one)
                tick_next = max(MIN_TICK, min(MAX_TICK, tick_next))
                sqrt_next_tick = sqrt_price_x96_from_tick(tick_next)
                if zero_for_one:
                    target = max(sqrt_next_tick, sqrt_price_limit_x96)
                else:
                    target = min(sqrt_next_tick, sqrt_price_limit_x96)

                sqrt_price, amount_in, amount_out, fee_amount = compute_swap_step(
                    sqrt_price, target, liquidity, remaining, self.fee
                )
                if exact_input:
                    remaining -= amount_in + fee_amount
                    calculated -= amount_out
                else:
                    remaining += amount_out
                    calculated += amount_in + fee_amount

                if liquidity > 0:
                    growth = (fee_amount * Q128) // liquidity
                    if zero_for_one:
                        growth0 = (growth0 + growth) & MASK_256
                    else:
                        growth1 = (growth1 + growth) & MASK_256

                if sqrt_price == sqrt_next_tick:
                    if initialized:
                        net = self._cross(tick_next, growth0, growth1)
                        liquidity += -net if zero_for_one else net
                    tick = tick_next - 1 if zero_for_one else tick_next
                elif sqrt_price != step_start:
                    tick = tick_at_sqrt_price_x96(sqrt_price)

            state.sqrt_price_x96 = sqrt_price
            state.tick = tick
            state.liquidity = liquidity
            state.fee_growth_global0_x128 = growth0
            state.fee_growth_global1_x128 = growth1

            if zero_for_one == exact_input:
                amount0 = amount_specified - remaining
                amount1 = calculated
            else:
                amount0 = calculated
                amount1 = amount_specified - remaining

            if zero_for_one:
                if amount1 < 0:
                    self.ledger.transfer(self.token1, self.address, recipient, -amount1)
                before = self.balance0()
                sender.uniswap_v3_swap_callback(self.address, amount0, amount1, data)
                if self.balance0() < before + amount0:
                    raise PoolError("swap callback underpaid token0", code="IIA")
            else:
                if amount0 < 0:
                    self.ledger.transfer(self.token0, self.address, recipient, -amount0)
                before = self.balance1()
                sender.uniswap_v3_swap_callback(self.address, amount0, amount1, data)
                if self.balance1() < before + amount1:
                    raise PoolError("swap callback underpaid token1", code="IIA")
        finally:
            self._unlock()
        return amount0, amount1


class PoolFactory(Contract):
    def __init__(self, chain: Chain, ledger: TokenLedger):
        super().__init__(chain, label="pool_factory")
        self.ledger = ledger
        # pool objects are not rolled back, only the registry entries pointing at them
        self._instances: dict[str, ConcentratedLiquidityPool] = {}

    @property
    def _registry(self) -> dict[tuple[str, str, int], str]:
        return self._store("pools")

    def get_pool(
        self, token_a: str, token_b: str, fee: int
    ) -> ConcentratedLiquidityPool | None:
        a, b = sorted(
            (to_checksum_address(token_a), to_checksum_address(token_b)),
            key=lambda x: int(x, 16),
        )
        address = self._registry.get((a, b, int(fee)))
        return self._instances.get(address) if address else None

    def pools(self) -> list[ConcentratedLiquidityPool]:
        return [self._instances[a] for a in self._registry.values()]

    def pool_at(self, address: str) -> ConcentratedLiquidityPool | None:
        address = to_checksum_address(address)
        if address not in self._registry.values():
            return None
        return self._instances.get(address)

    def create_pool(
        self, token_a: str, token_b: str, fee: int
    ) -> ConcentratedLiquidityPool:
        if self.get_pool(token_a, token_b, fee) is not None:
            raise PoolError("pool already exists", code="pool_exists")
        pool = ConcentratedLiquidityPool(self.chain, self.ledger, token_a, token_b, fee)
        self._instances[pool.address] = pool
        self._registry[(pool.token0, pool.token1, pool.fee)] = pool.address
        self.logger.info(
            f"Created pool {pool.address} for {pool.token0}/{pool.token1} fee={fee}"
        )
        return pool


class SwapRouter(Contract):
    """Pays for swaps out of ``payer``'s balance. Used by traders and tests."""

    def __init__(self, chain: Chain, ledger: TokenLedger, factory: PoolFactory):
        super().__init__(chain, label="swap_router")
        self.ledger = ledger
        self.factory = factory

    def uniswap_v3_swap_callback(
        self, pool: str, amount0_delta: int, amount1_delta: int, data: Any
    ) -> None:
        caller = self.factory.pool_at(pool)
        if caller is None:
            raise PoolError(f"swap callback from unknown pool {pool}", code="bad_pool")
        payer = data["payer"]
        if amount0_delta > 0:
            self.ledger.transfer(caller.token0, payer, caller.address, amount0_delta)
        if amount1_delta > 0:
            self.ledger.transfer(caller.token1, payer, caller.address, amount1_delta)

    @atomic
    def exact_input(
        self,
        payer: str,
        pool: ConcentratedLiquidityPool,
        token_in: str,
        amount_in: int,
        *,
        recipient: str | None = None,
        sqrt_price_limit_x96: int | None = None,
    ) -> int:
        """Sell ``amount_in`` of ``token_in``; returns the amount received."""
        token_in = to_checksum_address(token_in)
        if token_in not in (pool.token0, pool.token1):
            raise ConfigurationError(f"{token_in} is not traded in pool {pool.address}")
        zero_for_one = token_in == pool.token0
        amount0, amount1 = pool.swap(
            self,
            recipient or payer,
            zero_for_one,
            int(amount_in),
            sqrt_price_limit_x96,
            {"payer": to_checksum_address(payer)},
        )
        return -amount1 if zero_for_one else -amount0
