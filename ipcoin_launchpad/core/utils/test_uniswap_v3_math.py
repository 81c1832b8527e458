from __future__ import annotations

import pytest

from ipcoin_launchpad.core.constants import (
    MAX_SQRT_RATIO,
    MAX_TICK,
    MIN_SQRT_RATIO,
    MIN_TICK,
)
from ipcoin_launchpad.core.utils.uniswap_v3_math import (
    Q96,
    compute_swap_step,
    div_rounding_up,
    get_amount0_delta,
    get_amount1_delta,
    get_next_sqrt_price_from_input,
    liq_for_amt0,
    liq_for_amt1,
    max_usable_tick,
    min_usable_tick,
    mul_div_rounding_up,
    normalize_tick,
    round_tick_down,
    round_tick_up,
    sqrt_price_x96_from_tick,
    tick_at_sqrt_price_x96,
)


def test_sqrt_price_at_known_ticks():
    assert sqrt_price_x96_from_tick(0) == Q96
    assert sqrt_price_x96_from_tick(MIN_TICK) == MIN_SQRT_RATIO
    assert sqrt_price_x96_from_tick(MAX_TICK) == MAX_SQRT_RATIO


def test_sqrt_price_rejects_out_of_range_ticks():
    with pytest.raises(ValueError):
        sqrt_price_x96_from_tick(MIN_TICK - 1)
    with pytest.raises(ValueError):
        sqrt_price_x96_from_tick(MAX_TICK + 1)


@pytest.mark.parametrize("tick", [MIN_TICK, -144000, -61, -1, 0, 1, 60, 120000, MAX_TICK - 1])
def test_tick_at_sqrt_price_inverts_sqrt_price(tick):
    assert tick_at_sqrt_price_x96(sqrt_price_x96_from_tick(tick)) == tick


def test_tick_at_sqrt_price_floors_between_ticks():
    assert tick_at_sqrt_price_x96(sqrt_price_x96_from_tick(100) - 1) == 99
    assert tick_at_sqrt_price_x96(sqrt_price_x96_from_tick(-100) + 1) == -100


def test_tick_at_sqrt_price_rejects_max_ratio():
    with pytest.raises(ValueError):
        tick_at_sqrt_price_x96(MAX_SQRT_RATIO)


def test_round_tick_down_and_up():
    assert round_tick_down(-125, 60) == -180
    assert round_tick_down(125, 60) == 120
    assert round_tick_up(-125, 60) == -120
    assert round_tick_up(125, 60) == 180
    assert round_tick_up(120, 60) == 120


def test_usable_tick_bounds():
    assert min_usable_tick(60) == -887220
    assert max_usable_tick(60) == 887220
    assert max_usable_tick(200) == 887200
    assert min_usable_tick(1) == MIN_TICK


def test_normalize_tick_clamps_and_aligns():
    assert normalize_tick(125, 60) == 120
    assert normalize_tick(-125, 60) == -180
    assert normalize_tick(-120, 60) == -120
    assert normalize_tick(10**7, 60) == 887220


def test_normalize_tick_round_up_reclamps():
    assert normalize_tick(125, 60, round_up=True) == 180
    assert normalize_tick(-125, 60, round_up=True) == -120
    # one spacing above 887220 would cross the global maximum
    assert normalize_tick(887250, 60, round_up=True) == MAX_TICK


def test_rounding_helpers():
    assert mul_div_rounding_up(5, 3, 2) == 8
    assert mul_div_rounding_up(4, 3, 2) == 6
    assert div_rounding_up(7, 7) == 1
    assert div_rounding_up(8, 7) == 2


def test_amount_deltas():
    liquidity = 10**18
    assert get_amount1_delta(Q96, 2 * Q96, liquidity, round_up=False) == liquidity
    assert get_amount0_delta(Q96, 2 * Q96, liquidity, round_up=False) == liquidity // 2
    # argument order does not matter
    assert get_amount0_delta(2 * Q96, Q96, liquidity, round_up=True) == liquidity // 2


def test_liquidity_for_amounts():
    assert liq_for_amt1(Q96, 2 * Q96, 10**18) == 10**18
    assert liq_for_amt0(Q96, 2 * Q96, 5 * 10**17) == 10**18
    assert liq_for_amt0(Q96, Q96, 10**18) == 0


def test_next_sqrt_price_requires_liquidity():
    with pytest.raises(ValueError):
        get_next_sqrt_price_from_input(Q96, 0, 100, True)


def test_compute_swap_step_capped_at_target():
    target = sqrt_price_x96_from_tick(100)
    liquidity = 2 * 10**18
    sqrt_next, amount_in, amount_out, fee = compute_swap_step(
        Q96, target, liquidity, 10**18, 600
    )
    assert sqrt_next == target
    assert amount_in == get_amount1_delta(Q96, target, liquidity, round_up=True)
    assert amount_out == get_amount0_delta(Q96, target, liquidity, round_up=False)
    assert fee == mul_div_rounding_up(amount_in, 600, 10**6 - 600)
    assert amount_in + fee < 10**18


def test_compute_swap_step_consumes_exact_input():
    target = sqrt_price_x96_from_tick(1000)
    sqrt_next, amount_in, amount_out, fee = compute_swap_step(
        Q96, target, 10**18, 10**15, 3000
    )
    assert Q96 < sqrt_next < target
    assert amount_in + fee == 10**15
    assert amount_out > 0


def test_compute_swap_step_without_liquidity_jumps_to_target():
    target = sqrt_price_x96_from_tick(-500)
    sqrt_next, amount_in, amount_out, fee = compute_swap_step(Q96, target, 0, 10**18, 3000)
    assert sqrt_next == target
    assert (amount_in, amount_out, fee) == (0, 0, 0)


def test_compute_swap_step_exact_output():
    target = sqrt_price_x96_from_tick(-1000)
    sqrt_next, amount_in, amount_out, fee = compute_swap_step(
        Q96, target, 10**18, -(10**15), 3000
    )
    assert target < sqrt_next < Q96
    assert amount_out == 10**15
    assert amount_in > amount_out
    assert fee > 0
