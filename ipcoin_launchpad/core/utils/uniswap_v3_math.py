"""Uniswap v3 math helpers.

Exact integer ports of TickMath, SqrtPriceMath, SwapMath and LiquidityAmounts,
plus the tick rounding helpers shared by the ladder and the bid wall. No I/O.
"""

from __future__ import annotations

import math

from ipcoin_launchpad.core.constants import (
    MAX_SQRT_RATIO,
    MAX_TICK,
    MIN_SQRT_RATIO,
    MIN_TICK,
)

Q96 = 1 << 96
Q128 = 1 << 128
Q32 = 1 << 32
TICK_BASE = 1.0001
MASK_256 = (1 << 256) - 1
FEE_DENOMINATOR = 1_000_000


# ── full-precision helpers ───────────────────────────────────────────────


def mul_div(a: int, b: int, denominator: int) -> int:
    if denominator == 0:
        raise ZeroDivisionError("mul_div by zero")
    return (a * b) // denominator


def mul_div_rounding_up(a: int, b: int, denominator: int) -> int:
    if denominator == 0:
        raise ZeroDivisionError("mul_div by zero")
    q, r = divmod(a * b, denominator)
    return q + 1 if r else q


def div_rounding_up(a: int, denominator: int) -> int:
    q, r = divmod(a, denominator)
    return q + 1 if r else q


# ── ticks and prices ─────────────────────────────────────────────────────


def round_tick_down(tick: int, spacing: int) -> int:
    """Round toward negative infinity to a multiple of ``spacing``."""
    # floor division already handles negative ticks
    return (tick // spacing) * spacing


def round_tick_up(tick: int, spacing: int) -> int:
    """Round toward positive infinity to a multiple of ``spacing``."""
    remainder = tick % spacing
    if remainder == 0:
        return tick
    return tick + (spacing - remainder)


def min_usable_tick(spacing: int) -> int:
    return -(-MIN_TICK // spacing) * spacing


def max_usable_tick(spacing: int) -> int:
    return (MAX_TICK // spacing) * spacing


def normalize_tick(tick: int, spacing: int, *, round_up: bool = False) -> int:
    """Clamp ``tick`` into the global range and align it to ``spacing``.

    Alignment floors, so negative ticks move away from zero. With ``round_up``
    the aligned tick is moved one spacing unit up and clamped again, so the
    result never exceeds ``MAX_TICK`` (it may then be unaligned). Results
    outside the usable range are left for callers to reject.
    """
    tick = max(MIN_TICK, min(MAX_TICK, int(tick)))
    tick = round_tick_down(tick, spacing)
    if round_up:
        tick = min(MAX_TICK, tick + spacing)
    return tick


def sqrt_price_x96_from_tick(
    tick: int, *, min_tick: int = MIN_TICK, max_tick: int = MAX_TICK
) -> int:
    if tick < min_tick or tick > max_tick:
        raise ValueError(f"tick {tick} out of range [{min_tick}, {max_tick}]")

    abs_tick = tick if tick >= 0 else -tick
    ratio = (
        0xFFFCB933BD6FAD37AA2D162D1A594001
        if abs_tick & 0x1
        else 0x100000000000000000000000000000000
    )

    if abs_tick & 0x2:
        ratio = (ratio * 0xFFF97272373D413259A46990580E213A) >> 128
    if abs_tick & 0x4:
        ratio = (ratio * 0xFFF2E50F5F656932EF12357CF3C7FDCC) >> 128
    if abs_tick & 0x8:
        ratio = (ratio * 0xFFE5CACA7E10E4E61C3624EAA0941CD0) >> 128
    if abs_tick & 0x10:
        ratio = (ratio * 0xFFCB9843D60F6159C9DB58835C926644) >> 128
    if abs_tick & 0x20:
        ratio = (ratio * 0xFF973B41FA98C081472E6896DFB254C0) >> 128
    if abs_tick & 0x40:
        ratio = (ratio * 0xFF2EA16466C96A3843EC78B326B52861) >> 128
    if abs_tick & 0x80:
        ratio = (ratio * 0xFE5DEE046A99A2A811C461F1969C3053) >> 128
    if abs_tick & 0x100:
        ratio = (ratio * 0xFCBE86C7900A88AEDCFFC83B479AA3A4) >> 128
    if abs_tick & 0x200:
        ratio = (ratio * 0xF987A7253AC413176F2B074CF7815E54) >> 128
    if abs_tick & 0x400:
        ratio = (ratio * 0xF3392B0822B70005940C7A398E4B70F3) >> 128
    if abs_tick & 0x800:
        ratio = (ratio * 0xE7159475A2C29B7443B29C7FA6E889D9) >> 128
    if abs_tick & 0x1000:
        ratio = (ratio * 0xD097F3BDFD2022B8845AD8F792AA5825) >> 128
    if abs_tick & 0x2000:
        ratio = (ratio * 0xA9F746462D870FDF8A65DC1F90E061E5) >> 128
    if abs_tick & 0x4000:
        ratio = (ratio * 0x70D869A156D2A1B890BB3DF62BAF32F7) >> 128
    if abs_tick & 0x8000:
        ratio = (ratio * 0x31BE135F97D08FD981231505542FCFA6) >> 128
    if abs_tick & 0x10000:
        ratio = (ratio * 0x9AA508B5B7A84E1C677DE54F3E99BC9) >> 128
    if abs_tick & 0x20000:
        ratio = (ratio * 0x5D6AF8DEDB81196699C329225EE604) >> 128
    if abs_tick & 0x40000:
        ratio = (ratio * 0x2216E584F5FA1EA926041BEDFE98) >> 128
    if abs_tick & 0x80000:
        ratio = (ratio * 0x48A170391F7DC42444E8FA2) >> 128

    if tick > 0:
        ratio = MASK_256 // ratio

    sqrt_price_x96 = ratio >> 32
    if ratio & (Q32 - 1):
        sqrt_price_x96 += 1
    return int(sqrt_price_x96)


def tick_at_sqrt_price_x96(sqrt_price_x96: int) -> int:
    """Greatest tick whose sqrt price is <= ``sqrt_price_x96``."""
    if not MIN_SQRT_RATIO <= sqrt_price_x96 < MAX_SQRT_RATIO:
        raise ValueError(f"sqrt price {sqrt_price_x96} out of range")

    ratio = sqrt_price_x96 / Q96
    tick = math.floor(2 * math.log(ratio) / math.log(TICK_BASE))
    tick = max(MIN_TICK, min(MAX_TICK, tick))
    # float estimate is within a tick or two; settle it exactly
    while tick > MIN_TICK and sqrt_price_x96_from_tick(tick) > sqrt_price_x96:
        tick -= 1
    while tick < MAX_TICK and sqrt_price_x96_from_tick(tick + 1) <= sqrt_price_x96:
        tick += 1
    return tick


# ── SqrtPriceMath ────────────────────────────────────────────────────────


def get_amount0_delta(
    sqrt_a: int, sqrt_b: int, liquidity: int, *, round_up: bool
) -> int:
    if sqrt_a > sqrt_b:
        sqrt_a, sqrt_b = sqrt_b, sqrt_a
    if sqrt_a <= 0:
        raise ValueError("sqrt price must be positive")
    numerator1 = liquidity << 96
    numerator2 = sqrt_b - sqrt_a
    if round_up:
        return div_rounding_up(
            mul_div_rounding_up(numerator1, numerator2, sqrt_b), sqrt_a
        )
    return mul_div(numerator1, numerator2, sqrt_b) // sqrt_a


def get_amount1_delta(
    sqrt_a: int, sqrt_b: int, liquidity: int, *, round_up: bool
) -> int:
    if sqrt_a > sqrt_b:
        sqrt_a, sqrt_b = sqrt_b, sqrt_a
    if round_up:
        return mul_div_rounding_up(liquidity, sqrt_b - sqrt_a, Q96)
    return mul_div(liquidity, sqrt_b - sqrt_a, Q96)


def _next_sqrt_price_from_amount0(
    sqrt_price: int, liquidity: int, amount: int, add: bool
) -> int:
    if amount == 0:
        return sqrt_price
    numerator1 = liquidity << 96
    product = amount * sqrt_price
    if add:
        return mul_div_rounding_up(numerator1, sqrt_price, numerator1 + product)
    if numerator1 <= product:
        raise ValueError("insufficient liquidity for output")
    return mul_div_rounding_up(numerator1, sqrt_price, numerator1 - product)


def _next_sqrt_price_from_amount1(
    sqrt_price: int, liquidity: int, amount: int, add: bool
) -> int:
    if add:
        return sqrt_price + (amount << 96) // liquidity
    quotient = div_rounding_up(amount << 96, liquidity)
    if sqrt_price <= quotient:
        raise ValueError("insufficient liquidity for output")
    return sqrt_price - quotient


def get_next_sqrt_price_from_input(
    sqrt_price: int, liquidity: int, amount_in: int, zero_for_one: bool
) -> int:
    if sqrt_price <= 0 or liquidity <= 0:
        raise ValueError("price and liquidity must be positive")
    if zero_for_one:
        return _next_sqrt_price_from_amount0(sqrt_price, liquidity, amount_in, True)
    return _next_sqrt_price_from_amount1(sqrt_price, liquidity, amount_in, True)


def get_next_sqrt_price_from_output(
    sqrt_price: int, liquidity: int, amount_out: int, zero_for_one: bool
) -> int:
    if sqrt_price <= 0 or liquidity <= 0:
        raise ValueError("price and liquidity must be positive")
    if zero_for_one:
        return _next_sqrt_price_from_amount1(sqrt_price, liquidity, amount_out, False)
    return _next_sqrt_price_from_amount0(sqrt_price, liquidity, amount_out, False)


# ── SwapMath ─────────────────────────────────────────────────────────────


def compute_swap_step(
    sqrt_current: int,
    sqrt_target: int,
    liquidity: int,
    amount_remaining: int,
    fee_pips: int,
) -> tuple[int, int, int, int]:
    """One swap step toward ``sqrt_target``.

    Returns ``(sqrt_next, amount_in, amount_out, fee_amount)``. A positive
    ``amount_remaining`` is an exact input, a negative one an exact output.
    """
    zero_for_one = sqrt_current >= sqrt_target
    exact_in = amount_remaining >= 0
    amount_in = 0
    amount_out = 0

    if exact_in:
        remaining_less_fee = mul_div(
            amount_remaining, FEE_DENOMINATOR - fee_pips, FEE_DENOMINATOR
        )
        if zero_for_one:
            amount_in = get_amount0_delta(
                sqrt_target, sqrt_current, liquidity, round_up=True
            )
        else:
            amount_in = get_amount1_delta(
                sqrt_current, sqrt_target, liquidity, round_up=True
            )
        if remaining_less_fee >= amount_in:
            sqrt_next = sqrt_target
        else:
            sqrt_next = get_next_sqrt_price_from_input(
                sqrt_current, liquidity, remaining_less_fee, zero_for_one
            )
    else:
        if zero_for_one:
            amount_out = get_amount1_delta(
                sqrt_target, sqrt_current, liquidity, round_up=False
            )
        else:
            amount_out = get_amount0_delta(
                sqrt_current, sqrt_target, liquidity, round_up=False
            )
        if -amount_remaining >= amount_out:
            sqrt_next = sqrt_target
        else:
            sqrt_next = get_next_sqrt_price_from_output(
                sqrt_current, liquidity, -amount_remaining, zero_for_one
            )

    reached_target = sqrt_next == sqrt_target

    if zero_for_one:
        if not (reached_target and exact_in):
            amount_in = get_amount0_delta(
                sqrt_next, sqrt_current, liquidity, round_up=True
            )
        if not (reached_target and not exact_in):
            amount_out = get_amount1_delta(
                sqrt_next, sqrt_current, liquidity, round_up=False
            )
    else:
        if not (reached_target and exact_in):
            amount_in = get_amount1_delta(
                sqrt_current, sqrt_next, liquidity, round_up=True
            )
        if not (reached_target and not exact_in):
            amount_out = get_amount0_delta(
                sqrt_current, sqrt_next, liquidity, round_up=False
            )

    if not exact_in and amount_out > -amount_remaining:
        amount_out = -amount_remaining

    if exact_in and sqrt_next != sqrt_target:
        fee_amount = amount_remaining - amount_in
    else:
        fee_amount = mul_div_rounding_up(
            amount_in, fee_pips, FEE_DENOMINATOR - fee_pips
        )

    return sqrt_next, amount_in, amount_out, fee_amount


# ── LiquidityAmounts ─────────────────────────────────────────────────────


def liq_for_amt0(sqrt_a: int, sqrt_b: int, amount0: int) -> int:
    a, b = sorted((sqrt_a, sqrt_b))
    if b == a:
        return 0
    intermediate = mul_div(a, b, Q96)
    return mul_div(amount0, intermediate, b - a)


def liq_for_amt1(sqrt_a: int, sqrt_b: int, amount1: int) -> int:
    a, b = sorted((sqrt_a, sqrt_b))
    if b == a:
        return 0
    return mul_div(amount1, Q96, b - a)
