"""Single self-repositioning buy wall funded with the pairing asset.

The wall is one tick spacing wide and sits one spacing below the token's
market price. Every reposition unwinds the old range, burns whatever tokens
buyers sold into it, and reopens just under the new price with at most
``funding_cap`` of the pairing asset.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any

from eth_utils import to_checksum_address

from ipcoin_launchpad.contracts.pool_side import PoolSide
from ipcoin_launchpad.core.adapters.models import BidWallRepositioned, PositionCollected
from ipcoin_launchpad.core.chain import Chain, Contract, atomic, non_reentrant
from ipcoin_launchpad.core.errors import AuthorizationError, ConfigurationError
from ipcoin_launchpad.core.pool import ConcentratedLiquidityPool
from ipcoin_launchpad.core.tokens import TokenLedger
from ipcoin_launchpad.core.utils.uniswap_v3_math import (
    max_usable_tick,
    min_usable_tick,
    normalize_tick,
)


@dataclass
class BidWallPosition:
    tick_lower: int | None = None
    tick_upper: int | None = None
    liquidity: int = 0


@dataclass(frozen=True)
class RepositionResult:
    repositioned: bool
    tick_lower: int | None
    tick_upper: int | None
    collected_token: int
    collected_pairing: int
    burned: int
    funded: int
    liquidity: int


class BidWall(Contract):
    def __init__(
        self,
        chain: Chain,
        ledger: TokenLedger,
        pool: ConcentratedLiquidityPool,
        token: str,
        *,
        funding_cap: int,
    ):
        super().__init__(chain, label=f"bid_wall:{token}")
        if funding_cap < 0:
            raise ConfigurationError("funding_cap must be non-negative")
        self.ledger = ledger
        self.side = PoolSide(pool, to_checksum_address(token))
        self.token = self.side.token
        self.pairing_token = self.side.pairing_token
        self.funding_cap = int(funding_cap)
        self.spacing = pool.tick_spacing

    @property
    def pool(self) -> ConcentratedLiquidityPool:
        return self.side.pool

    @property
    def _position(self) -> BidWallPosition:
        store = self._store("position")
        if "wall" not in store:
            store["wall"] = BidWallPosition()
        return store["wall"]

    def position(self) -> BidWallPosition:
        return replace(self._position)

    @property
    def lower_tick(self) -> int | None:
        """Lower edge of the wall in the token's own price terms."""
        pos = self._position
        if pos.tick_lower is None:
            return None
        lower, _ = self.side.to_token_range(pos.tick_lower, pos.tick_upper)
        return lower

    def pairing_balance(self) -> int:
        return self.ledger.balance_of(self.pairing_token, self.address)

    def next_range(self) -> tuple[int, int] | None:
        """Pool-terms range one spacing under market, or None past the tick bounds."""
        _, tick = self.pool.slot0()
        if self.side.token_is_token0:
            # pairing asset is token1: the wall sits below the pool price
            upper = normalize_tick(tick, self.spacing)
            lower = upper - self.spacing
        else:
            # pairing asset is token0: the wall sits above the pool price
            lower = normalize_tick(tick, self.spacing, round_up=True)
            upper = lower + self.spacing
        if lower % self.spacing or upper % self.spacing:
            return None
        if lower < min_usable_tick(self.spacing) or upper > max_usable_tick(self.spacing):
            return None
        return lower, upper

    def uniswap_v3_mint_callback(
        self, pool: str, amount0_owed: int, amount1_owed: int, data: Any
    ) -> None:
        if to_checksum_address(pool) != self.pool.address:
            raise AuthorizationError(f"mint callback from unexpected caller {pool}")
        if amount0_owed:
            self.ledger.transfer(self.pool.token0, self.address, self.pool.address, amount0_owed)
        if amount1_owed:
            self.ledger.transfer(self.pool.token1, self.address, self.pool.address, amount1_owed)

    def _withdraw(self) -> tuple[int, int]:
        pos = self._position
        if pos.tick_lower is None:
            return 0, 0
        if pos.liquidity > 0:
            self.pool.burn(self.address, pos.tick_lower, pos.tick_upper, pos.liquidity)
            pos.liquidity = 0
        amount0, amount1 = self.pool.collect(
            self.address, self.address, pos.tick_lower, pos.tick_upper
        )
        if amount0 or amount1:
            self.emit(
                PositionCollected(
                    pool=self.pool.address,
                    tick_lower=pos.tick_lower,
                    tick_upper=pos.tick_upper,
                    amount0=amount0,
                    amount1=amount1,
                )
            )
        return self.side.split(amount0, amount1)

    @non_reentrant
    @atomic
    def reposition(self) -> RepositionResult:
        collected_token, collected_pairing = self._withdraw()
        if collected_token:
            self.ledger.burn(self.token, self.address, collected_token)

        pos = self._position
        new_range = self.next_range()
        if new_range is None:
            self.logger.warning(
                f"Bid wall for {self.token} left idle: next range is outside the tick bounds"
            )
            return RepositionResult(
                repositioned=False,
                tick_lower=pos.tick_lower,
                tick_upper=pos.tick_upper,
                collected_token=collected_token,
                collected_pairing=collected_pairing,
                burned=collected_token,
                funded=0,
                liquidity=0,
            )

        lower, upper = new_range
        funded = min(self.pairing_balance(), self.funding_cap)
        liquidity = self.side.pairing_liquidity(lower, upper, funded) if funded else 0
        paid = 0
        if liquidity > 0:
            amount0, amount1 = self.pool.mint(self, self.address, lower, upper, liquidity)
            _, paid = self.side.split(amount0, amount1)
        pos.tick_lower, pos.tick_upper, pos.liquidity = lower, upper, liquidity

        self.emit(
            BidWallRepositioned(
                token=self.token,
                tick_lower=lower,
                tick_upper=upper,
                collected_token=collected_token,
                collected_pairing=collected_pairing,
                burned=collected_token,
                funded=paid,
                liquidity=liquidity,
            )
        )
        self.logger.info(
            f"Bid wall for {self.token} at [{lower}, {upper}) with {paid} pairing, "
            f"burned {collected_token}"
        )
        return RepositionResult(
            repositioned=True,
            tick_lower=lower,
            tick_upper=upper,
            collected_token=collected_token,
            collected_pairing=collected_pairing,
            burned=collected_token,
            funded=paid,
            liquidity=liquidity,
        )
