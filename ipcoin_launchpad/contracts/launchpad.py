"""Token launches, ladder harvests and fee distribution.

The launchpad is the only writer of per-token launch records. It owns every
ladder position, answers the pool's mint callback for them, and on harvest
splits the pairing-asset proceeds between the IP-asset recipient (through the
vesting vault), the token's bid wall and the treasury.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field, replace
from typing import Any

from eth_utils import to_checksum_address

from ipcoin_launchpad.contracts.bid_wall import BidWall
from ipcoin_launchpad.contracts.ip_registry import IpRecipientRegistry
from ipcoin_launchpad.contracts.liquidity_ladder import (
    LiquidityLadder,
    LiquidityTier,
    active_tier_index,
    tiers_from_ticks,
    validate_allocations,
    validate_start_ticks,
)
from ipcoin_launchpad.contracts.pool_side import PoolSide
from ipcoin_launchpad.contracts.vesting_vault import VestingVault
from ipcoin_launchpad.core.adapters.models import Harvested, HarvestResult, TokenLinked
from ipcoin_launchpad.core.chain import Chain, Contract, atomic, non_reentrant
from ipcoin_launchpad.core.config import LaunchpadConfig
from ipcoin_launchpad.core.constants import ZERO_ADDRESS
from ipcoin_launchpad.core.errors import (
    AuthorizationError,
    ConfigurationError,
    NoTiersConfiguredError,
    RevertError,
    StateError,
    TickRangeError,
    UnknownTokenError,
)
from ipcoin_launchpad.core.pool import ConcentratedLiquidityPool, PoolFactory
from ipcoin_launchpad.core.tokens import TokenLedger
from ipcoin_launchpad.core.utils.token_metadata import (
    TokenMetadata,
    address_to_int,
    encode_metadata,
    int_to_address,
    update_identifier,
)
from ipcoin_launchpad.core.utils.uniswap_v3_math import sqrt_price_x96_from_tick


@dataclass
class LaunchRecord:
    token: str
    pool: str
    creator: str
    metadata: int = 0
    allocations: list[int] = field(default_factory=list)
    bid_wall: str | None = None


class Launchpad(Contract):
    def __init__(
        self,
        chain: Chain,
        ledger: TokenLedger,
        factory: PoolFactory,
        registry: IpRecipientRegistry,
        vault: VestingVault,
        config: LaunchpadConfig,
        pairing_token: str,
    ):
        super().__init__(chain, label="launchpad")
        pairing_token = to_checksum_address(pairing_token)
        if pairing_token == ZERO_ADDRESS:
            raise ConfigurationError("pairing token cannot be the zero address")
        if vault.pairing_token != pairing_token:
            raise ConfigurationError("vesting vault pays out a different pairing asset")
        self.ledger = ledger
        self.factory = factory
        self.registry = registry
        self.vault = vault
        self.config = config
        self.pairing_token = pairing_token
        self.ladder = LiquidityLadder(self, config.precision)
        # wall objects are not rolled back, only the registry entries pointing at them
        self._bid_walls: dict[str, BidWall] = {}
        vault.bind_orchestrator(self)

    # ── records ──────────────────────────────────────────────────────────

    @property
    def _records(self) -> dict[str, LaunchRecord]:
        return self._store("records")

    @property
    def _wall_registry(self) -> dict[str, str]:
        return self._store("bid_walls")

    def _record(self, token: str) -> LaunchRecord:
        record = self._records.get(to_checksum_address(token))
        if record is None:
            raise UnknownTokenError(f"{token} was not launched here")
        return record

    def record(self, token: str) -> LaunchRecord:
        return replace(self._record(token))

    def tokens(self) -> list[str]:
        return list(self._records)

    def pool_of(self, token: str) -> ConcentratedLiquidityPool:
        pool = self.factory.pool_at(self._record(token).pool)
        if pool is None:
            raise UnknownTokenError(f"no pool for {token}")
        return pool

    def side_of(self, token: str) -> PoolSide:
        return PoolSide(self.pool_of(token), to_checksum_address(token))

    def bid_wall_of(self, token: str) -> BidWall | None:
        address = self._wall_registry.get(self._record(token).token)
        return self._bid_walls.get(address) if address else None

    def bid_walls(self) -> list[BidWall]:
        return [self._bid_walls[a] for a in self._wall_registry.values()]

    def token_metadata(self, token: str) -> TokenMetadata:
        return TokenMetadata.unpack(self._record(token).metadata)

    def ip_asset_of(self, token: str) -> int:
        record = self._records.get(to_checksum_address(token))
        return TokenMetadata.unpack(record.metadata).ip_asset_id if record else 0

    def tiers(self, token: str) -> list[LiquidityTier]:
        record = self._record(token)
        ticks = list(TokenMetadata.unpack(record.metadata).ticks)
        if not ticks:
            return []
        return tiers_from_ticks(ticks, self.config.tick_spacing, record.allocations)

    def active_tier(self, token: str) -> tuple[int, LiquidityTier]:
        tiers = self.tiers(token)
        if not tiers:
            raise NoTiersConfiguredError(f"{token} has no liquidity tiers")
        index = active_tier_index(tiers, self.side_of(token).token_tick())
        return index, tiers[index]

    # ── pool callback ────────────────────────────────────────────────────

    def uniswap_v3_mint_callback(
        self, pool: str, amount0_owed: int, amount1_owed: int, data: Any
    ) -> None:
        if not self._entered:
            raise AuthorizationError("mint callback outside a launchpad call")
        pool = to_checksum_address(pool)
        token = to_checksum_address((data or {}).get("token", ZERO_ADDRESS))
        record = self._records.get(token)
        if record is None or record.pool != pool:
            raise AuthorizationError(f"mint callback from unexpected caller {pool}")
        if to_checksum_address(data.get("payer", ZERO_ADDRESS)) != self.address:
            raise AuthorizationError("mint callback for a position opened elsewhere")
        caller = self.factory.pool_at(pool)
        if amount0_owed:
            self.ledger.transfer(caller.token0, self.address, pool, amount0_owed)
        if amount1_owed:
            self.ledger.transfer(caller.token1, self.address, pool, amount1_owed)

    def _callback_data(self, token: str) -> dict[str, str]:
        return {"token": to_checksum_address(token), "payer": self.address}

    # ── launch ───────────────────────────────────────────────────────────

    @non_reentrant
    @atomic
    def deploy_token(
        self,
        caller: str,
        name: str,
        symbol: str,
        creator: str,
        *,
        launch_tick: int,
        ip_asset_id: int | str | None = None,
        with_bid_wall: bool = True,
        token_address: str | None = None,
    ) -> str:
        """Mint the supply to the launchpad and open its pool at ``launch_tick``."""
        self.registry.require_operator(caller)
        creator = to_checksum_address(creator)
        if creator == ZERO_ADDRESS:
            raise ConfigurationError("creator cannot be the zero address")
        spacing = self.config.tick_spacing
        if launch_tick % spacing:
            raise ConfigurationError(f"launch tick {launch_tick} is not a multiple of {spacing}")

        token = self.ledger.create_token(name, symbol, address=token_address)
        self.ledger.mint(token, self.address, self.config.token_supply)

        pool = self.factory.create_pool(token, self.pairing_token, self.config.pool_fee)
        side = PoolSide(pool, token)
        pool_tick = launch_tick if side.token_is_token0 else -launch_tick
        try:
            pool.initialize(sqrt_price_x96_from_tick(pool_tick))
        except ValueError as exc:
            raise TickRangeError(str(exc)) from exc

        metadata = encode_metadata(address_to_int(ip_asset_id) if ip_asset_id else 0, [])
        bid_wall_address = None
        if with_bid_wall:
            wall = BidWall(
                self.chain, self.ledger, pool, token, funding_cap=self.config.bid_wall_funding_cap
            )
            self._bid_walls[wall.address] = wall
            self._wall_registry[token] = wall.address
            bid_wall_address = wall.address

        self._records[token] = LaunchRecord(
            token=token,
            pool=pool.address,
            creator=creator,
            metadata=metadata,
            bid_wall=bid_wall_address,
        )
        exempt = {self.address, self.vault.address}
        if bid_wall_address:
            exempt.add(bid_wall_address)
        self.ledger.set_transfer_policy(
            token,
            pool=pool.address,
            creator=creator,
            window=self.config.anti_snipe_window,
            max_per_window=self.config.anti_snipe_max_transfer,
            exempt=exempt,
        )
        self.logger.info(f"Deployed {symbol} at {token} with pool {pool.address}")
        return token

    @non_reentrant
    @atomic
    def create_tiers(
        self,
        caller: str,
        token: str,
        start_ticks: Sequence[int],
        allocations: Sequence[int],
    ) -> list[LiquidityTier]:
        """Open the ladder and send the unallocated supply to the vesting vault."""
        self.registry.require_operator(caller)
        record = self._record(token)
        current = TokenMetadata.unpack(record.metadata)
        if current.ticks:
            raise StateError(f"{record.token} already has liquidity tiers", code="tiers_exist")

        spacing = self.config.tick_spacing
        ticks = validate_start_ticks(start_ticks, spacing)
        allocs = validate_allocations(allocations, len(ticks), self.config.precision)
        side = self.side_of(record.token)
        if ticks[0] < side.token_tick():
            raise TickRangeError(
                f"first tier starts at {ticks[0]}, below the market tick {side.token_tick()}"
            )

        tiers = tiers_from_ticks(ticks, spacing, allocs)
        supply = self.config.token_supply
        deposited = self.ladder.open_tiers(side, tiers, supply, self._callback_data(record.token))
        remainder = supply - deposited
        if remainder > 0:
            self.ledger.transfer(record.token, self.address, self.vault.address, remainder)

        # keep whatever identifier was linked before the ladder existed
        record.metadata = encode_metadata(current.ip_asset_id, ticks)
        record.allocations = allocs
        self.logger.info(
            f"Created {len(tiers)} tiers for {record.token}; {remainder} to the vesting vault"
        )
        return tiers

    def create_token(
        self,
        caller: str,
        name: str,
        symbol: str,
        creator: str,
        start_ticks: Sequence[int],
        allocations: Sequence[int],
        *,
        ip_asset_id: int | str | None = None,
        with_bid_wall: bool = True,
        token_address: str | None = None,
    ) -> str:
        if not start_ticks:
            raise ConfigurationError("at least one tier is required")
        with self.chain.transaction():
            token = self.deploy_token(
                caller,
                name,
                symbol,
                creator,
                launch_tick=int(start_ticks[0]),
                ip_asset_id=ip_asset_id,
                with_bid_wall=with_bid_wall,
                token_address=token_address,
            )
            self.create_tiers(caller, token, start_ticks, allocations)
        return token

    @atomic
    def link_ip_asset(self, caller: str, token: str, ip_asset_id: int | str) -> None:
        """Point ``token`` at an IP asset without touching its tier ticks."""
        self.registry.require_operator(caller)
        record = self._record(token)
        key = address_to_int(ip_asset_id)
        if key == 0:
            raise ConfigurationError("IP asset id cannot be zero")
        record.metadata = update_identifier(record.metadata, key)
        self.emit(TokenLinked(token=record.token, ip_asset_id=int_to_address(key)))
        self.logger.info(f"Linked {record.token} to IP asset {int_to_address(key)}")

    # ── harvest ──────────────────────────────────────────────────────────

    @non_reentrant
    @atomic
    def harvest(self, token: str) -> Harvested:
        record = self._record(token)
        ticks = list(TokenMetadata.unpack(record.metadata).ticks)
        if not ticks:
            raise NoTiersConfiguredError(f"{record.token} has no liquidity tiers")

        tiers = tiers_from_ticks(ticks, self.config.tick_spacing, record.allocations)
        side = self.side_of(record.token)
        index = active_tier_index(tiers, side.token_tick())
        summary = Harvested(token=record.token, tier_index=index)

        owed_token, owed_pairing = self.ladder.accrued_fees(side, tiers[index])
        if owed_token or owed_pairing:
            token_amount, pairing_amount = self.ladder.withdraw(side, tiers[index])
            summary.token_collected = token_amount
            summary.pairing_collected = pairing_amount
            self._settle_token_side(side, tiers, index, token_amount, summary)
            self._distribute_pairing(record, pairing_amount, summary)
        else:
            self.logger.debug(f"Nothing accrued for {record.token} in tier {index}")

        self._start_vesting_if_bound(record)
        self.emit(summary)
        self.logger.info(
            f"Harvested {record.token} tier {index}: {summary.token_collected} tokens, "
            f"{summary.pairing_collected} pairing"
        )
        return summary

    def _settle_token_side(
        self,
        side: PoolSide,
        tiers: Sequence[LiquidityTier],
        index: int,
        token_amount: int,
        summary: Harvested,
    ) -> None:
        if token_amount == 0:
            return
        if index == 0 and len(tiers) > 1:
            summary.token_promoted = self.ladder.promote(
                side, tiers, token_amount, self._callback_data(side.token)
            )
            return
        burned = token_amount * self.config.burn_share // self.config.precision
        if burned:
            self.ledger.burn(side.token, self.address, burned)
        summary.token_burned = burned

    def _distribute_pairing(
        self, record: LaunchRecord, pairing_amount: int, summary: Harvested
    ) -> None:
        if pairing_amount == 0:
            return
        precision = self.config.precision
        owner_amount = pairing_amount * self.config.ip_owner_share // precision
        buyback_amount = (
            pairing_amount * self.config.buyback_share // precision if record.bid_wall else 0
        )
        treasury_amount = pairing_amount - owner_amount - buyback_amount
        summary.owner_amount = owner_amount
        summary.buyback_amount = buyback_amount
        summary.treasury_amount = treasury_amount

        if owner_amount:
            self.vault.deposit_pending(self.address, record.token, owner_amount)
        if treasury_amount:
            self.ledger.transfer(
                self.pairing_token, self.address, self.config.treasury, treasury_amount
            )
        if buyback_amount:
            wall = self._bid_walls[self._wall_registry[record.token]]
            self.ledger.transfer(self.pairing_token, self.address, wall.address, buyback_amount)
            wall.reposition()

    def _start_vesting_if_bound(self, record: LaunchRecord) -> None:
        ip_asset_id = TokenMetadata.unpack(record.metadata).ip_asset_id
        if not ip_asset_id or self.registry.recipient_of(ip_asset_id) is None:
            return
        if self.vault.has_schedule(record.token):
            return
        if self.ledger.balance_of(record.token, self.vault.address) == 0:
            return
        self.vault.create_schedule(self.address, record.token)

    def harvest_many(self, tokens: Iterable[str]) -> list[HarvestResult]:
        """Harvest each token in turn; a failing token does not stop the rest."""
        results: list[HarvestResult] = []
        for token in tokens:
            try:
                summary = self.harvest(token)
            except RevertError as exc:
                self.logger.warning(f"Harvest of {token} reverted [{exc.code}]: {exc}")
                results.append(
                    HarvestResult(token=str(token), ok=False, error=str(exc), error_code=exc.code)
                )
                continue
            except Exception as exc:
                self.logger.error(f"Harvest of {token} failed: {exc}")
                results.append(
                    HarvestResult(
                        token=str(token),
                        ok=False,
                        error=str(exc),
                        error_code=getattr(exc, "code", "error"),
                    )
                )
                continue
            results.append(HarvestResult(token=summary.token, ok=True, summary=summary))
        return results
