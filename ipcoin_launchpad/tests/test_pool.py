from __future__ import annotations

import pytest

from ipcoin_launchpad.core.constants import MANTISSA
from ipcoin_launchpad.core.errors import ConfigurationError, PoolError, TickRangeError
from ipcoin_launchpad.core.pool import PoolFactory, SwapRouter
from ipcoin_launchpad.core.tokens import TokenLedger
from ipcoin_launchpad.core.utils.uniswap_v3_math import sqrt_price_x96_from_tick
from ipcoin_launchpad.testing.launchpad import TRADER

TOKEN_A = "0x2222222222222222222222222222222222222222"
TOKEN_B = "0x1111111111111111111111111111111111111111"
LP = "0x7000000000000000000000000000000000000007"
FULL_RANGE = (-887220, 887220)
LIQUIDITY = 10**21


class LiquidityProvider:
    def __init__(self, ledger: TokenLedger, *, underpay: bool = False):
        self.address = LP
        self.ledger = ledger
        self.underpay = underpay

    def uniswap_v3_mint_callback(self, pool, amount0_owed, amount1_owed, data):
        tokens = data
        if self.underpay:
            amount0_owed = max(amount0_owed - 1, 0)
        if amount0_owed:
            self.ledger.transfer(tokens[0], self.address, pool, amount0_owed)
        if amount1_owed:
            self.ledger.transfer(tokens[1], self.address, pool, amount1_owed)


@pytest.fixture
def ledger(chain) -> TokenLedger:
    ledger = TokenLedger(chain)
    for symbol, address in (("AAA", TOKEN_A), ("BBB", TOKEN_B)):
        ledger.create_token(symbol, symbol, address=address)
        ledger.mint(address, LP, 10**24)
        ledger.mint(address, TRADER, 10**24)
    return ledger


@pytest.fixture
def factory(chain, ledger) -> PoolFactory:
    return PoolFactory(chain, ledger)


@pytest.fixture
def pool(factory):
    pool = factory.create_pool(TOKEN_A, TOKEN_B, 3000)
    pool.initialize(sqrt_price_x96_from_tick(0))
    return pool


def _mint(pool, ledger, tick_lower, tick_upper, amount=LIQUIDITY, **kwargs):
    provider = LiquidityProvider(ledger, **kwargs)
    return pool.mint(
        provider, LP, tick_lower, tick_upper, amount, (pool.token0, pool.token1)
    )


def test_factory_sorts_tokens_and_rejects_duplicates(factory, pool):
    assert (pool.token0, pool.token1) == (TOKEN_B, TOKEN_A)
    assert pool.tick_spacing == 60
    assert factory.get_pool(TOKEN_B, TOKEN_A, 3000) is pool
    assert factory.pool_at(pool.address) is pool
    with pytest.raises(PoolError) as exc_info:
        factory.create_pool(TOKEN_B, TOKEN_A, 3000)
    assert exc_info.value.code == "pool_exists"


def test_unknown_fee_tier(factory):
    with pytest.raises(ConfigurationError):
        factory.create_pool(TOKEN_A, TOKEN_B, 1234)


def test_initialize_once(factory, ledger):
    pool = factory.create_pool(TOKEN_A, TOKEN_B, 10000)
    with pytest.raises(PoolError) as exc_info:
        _mint(pool, ledger, -200, 200)
    assert exc_info.value.code == "not_initialized"
    assert pool.initialize(sqrt_price_x96_from_tick(-400)) == -400
    with pytest.raises(PoolError):
        pool.initialize(sqrt_price_x96_from_tick(0))


@pytest.mark.parametrize(
    ("tick_lower", "tick_upper", "pays0", "pays1"),
    [
        (60, 120, True, False),
        (-60, 60, True, True),
        (-120, -60, False, True),
    ],
)
def test_mint_pays_by_price_position(pool, ledger, tick_lower, tick_upper, pays0, pays1):
    amount0, amount1 = _mint(pool, ledger, tick_lower, tick_upper)
    assert (amount0 > 0, amount1 > 0) == (pays0, pays1)
    assert pool.balance0() == amount0
    assert pool.balance1() == amount1
    assert pool.position(LP, tick_lower, tick_upper).liquidity == LIQUIDITY
    assert pool.liquidity == (LIQUIDITY if pays0 and pays1 else 0)


def test_mint_rejects_bad_ranges(pool, ledger):
    with pytest.raises(TickRangeError):
        _mint(pool, ledger, 60, 60)
    with pytest.raises(TickRangeError):
        _mint(pool, ledger, -50, 60)
    with pytest.raises(TickRangeError):
        _mint(pool, ledger, -887280, 0)


def test_underpaid_mint_leaves_no_position(pool, ledger):
    with pytest.raises(PoolError) as exc_info:
        _mint(pool, ledger, -60, 60, underpay=True)
    assert exc_info.value.code == "M0"
    assert pool.position(LP, -60, 60).liquidity == 0
    assert pool.liquidity == 0
    assert pool.balance0() == pool.balance1() == 0
    assert ledger.balance_of(pool.token0, LP) == 10**24


class NonPayingSwapper:
    address = TRADER

    def uniswap_v3_swap_callback(self, pool, amount0_delta, amount1_delta, data):
        pass


def test_unpaid_swap_leaves_pool_unchanged(pool, ledger):
    _mint(pool, ledger, *FULL_RANGE)
    slot0 = pool.slot0()
    before = (pool.balance0(), pool.balance1(), ledger.balance_of(pool.token1, TRADER))

    with pytest.raises(PoolError) as exc_info:
        pool.swap(NonPayingSwapper(), TRADER, True, MANTISSA)

    assert exc_info.value.code == "IIA"
    assert pool.slot0() == slot0
    assert (pool.balance0(), pool.balance1(), ledger.balance_of(pool.token1, TRADER)) == before


def test_poke_without_liquidity(pool):
    with pytest.raises(PoolError) as exc_info:
        pool.burn(LP, -60, 60, 0)
    assert exc_info.value.code == "NP"


def test_swap_fees_accrue_to_in_range_liquidity(pool, ledger, chain, factory):
    _mint(pool, ledger, *FULL_RANGE)
    router = SwapRouter(chain, ledger, factory)

    received = router.exact_input(TRADER, pool, pool.token0, MANTISSA)

    assert 0 < received < MANTISSA
    assert pool.slot0()[1] < 0
    pool.burn(LP, *FULL_RANGE, 0)
    position = pool.position(LP, *FULL_RANGE)
    assert 0 < position.tokens_owed0 <= MANTISSA * 3000 // 1_000_000
    assert position.tokens_owed1 == 0


def test_burn_and_collect(pool, ledger):
    paid0, paid1 = _mint(pool, ledger, -60, 60)
    before0 = ledger.balance_of(pool.token0, TRADER)

    owed0, owed1 = pool.burn(LP, -60, 60, LIQUIDITY)
    # rounding favours the pool
    assert paid0 - 1 <= owed0 <= paid0
    assert paid1 - 1 <= owed1 <= paid1

    assert pool.collect(LP, TRADER, -60, 60) == (owed0, owed1)
    assert ledger.balance_of(pool.token0, TRADER) == before0 + owed0
    assert pool.position(LP, -60, 60).tokens_owed0 == 0
    assert pool.collect(LP, TRADER, -60, 60) == (0, 0)


def test_burn_more_than_position(pool, ledger):
    _mint(pool, ledger, -60, 60)
    with pytest.raises(PoolError) as exc_info:
        pool.burn(LP, -60, 60, LIQUIDITY + 1)
    assert exc_info.value.code == "LS"


def test_router_rejects_foreign_token(pool, ledger, chain, factory):
    router = SwapRouter(chain, ledger, factory)
    with pytest.raises(ConfigurationError):
        router.exact_input(TRADER, pool, LP, MANTISSA)


def test_router_callback_from_unknown_pool(ledger, chain, factory):
    router = SwapRouter(chain, ledger, factory)
    with pytest.raises(PoolError) as exc_info:
        router.uniswap_v3_swap_callback(LP, 1, 0, {"payer": TRADER})
    assert exc_info.value.code == "bad_pool"
