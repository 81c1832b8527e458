from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from eth_utils import to_checksum_address

from ipcoin_launchpad.contracts.bid_wall import RepositionResult
from ipcoin_launchpad.contracts.deployment import LaunchpadDeployment, deploy_launchpad
from ipcoin_launchpad.core.adapters.BaseAdapter import BaseAdapter, require_operator
from ipcoin_launchpad.core.adapters.decorators import status_tuple
from ipcoin_launchpad.core.adapters.models import Harvested, HarvestResult
from ipcoin_launchpad.core.config import get_launchpad_config
from ipcoin_launchpad.core.errors import UnknownTokenError


class LaunchpadAdapter(BaseAdapter):
    """Async, status-tuple facade over a deployed launchpad.

    Read methods work for anyone; token creation and linking need an
    ``operator`` address holding the registry's operator capability.
    """

    adapter_type: str = "LAUNCHPAD"

    def __init__(
        self,
        config: dict[str, Any] | None = None,
        *,
        deployment: LaunchpadDeployment | None = None,
        operator: str | None = None,
    ):
        super().__init__("launchpad_adapter", config)
        operator = operator or self.config.get("operator")
        self.operator = to_checksum_address(operator) if operator else None
        if deployment is None:
            if not self.operator:
                raise ValueError("operator is required to deploy a launchpad")
            deployment = deploy_launchpad(
                get_launchpad_config(self.config.get("launchpad")),
                owner=self.operator,
                pairing_token=self.config.get("pairing_token"),
            )
        self.deployment = deployment
        self.launchpad = deployment.launchpad
        self.vault = deployment.vault

    # ── launches ─────────────────────────────────────────────────────────

    @require_operator
    @status_tuple
    async def create_token(
        self,
        name: str,
        symbol: str,
        creator: str,
        start_ticks: Sequence[int],
        allocations: Sequence[int],
        *,
        ip_asset_id: int | str | None = None,
        with_bid_wall: bool = True,
    ) -> str:
        return self.launchpad.create_token(
            self.operator,
            name,
            symbol,
            creator,
            start_ticks,
            allocations,
            ip_asset_id=ip_asset_id,
            with_bid_wall=with_bid_wall,
        )

    @require_operator
    @status_tuple
    async def link_ip_asset(self, token: str, ip_asset_id: int | str) -> str:
        self.launchpad.link_ip_asset(self.operator, token, ip_asset_id)
        return self.launchpad.token_metadata(token).ip_asset_address

    # ── harvest ──────────────────────────────────────────────────────────

    @status_tuple
    async def harvest(self, token: str) -> Harvested:
        return self.launchpad.harvest(token)

    @status_tuple
    async def harvest_many(self, tokens: Sequence[str]) -> list[HarvestResult]:
        results = self.launchpad.harvest_many(tokens)
        failed = [r.token for r in results if not r.ok]
        if failed:
            self.logger.warning(f"{len(failed)}/{len(results)} harvests failed: {failed}")
        return results

    @status_tuple
    async def reposition_bid_wall(self, token: str) -> RepositionResult:
        wall = self.launchpad.bid_wall_of(token)
        if wall is None:
            raise UnknownTokenError(f"{token} has no bid wall")
        return wall.reposition()

    # ── vesting ──────────────────────────────────────────────────────────

    @status_tuple
    async def claim_vested(self, token: str) -> dict[str, int]:
        token_amount, pairing_amount = self.vault.claim(token)
        return {"token_amount": token_amount, "pairing_amount": pairing_amount}

    @status_tuple
    async def get_vesting_schedule(self, token: str) -> dict[str, Any]:
        schedule = self.vault.schedule(token)
        return {
            "is_set": schedule.is_set,
            "start": schedule.start,
            "end": schedule.end,
            "total": schedule.total,
            "remaining": schedule.remaining,
            "released": schedule.released,
            "releasable": self.vault.releasable(token),
            "pending_pairing": self.vault.pending_pairing(token),
        }

    # ── reads ────────────────────────────────────────────────────────────

    @status_tuple
    async def get_token_metadata(self, token: str) -> dict[str, Any]:
        metadata = self.launchpad.token_metadata(token)
        return {
            "word": hex(metadata.pack()),
            "ip_asset_id": metadata.ip_asset_address,
            "ticks": list(metadata.ticks),
        }

    @status_tuple
    async def get_tiers(self, token: str) -> list[dict[str, Any]]:
        tiers = self.launchpad.tiers(token)
        active = self.launchpad.active_tier(token)[0] if tiers else None
        return [
            {
                "index": i,
                "tick_lower": tier.lower_tick,
                "tick_upper": tier.upper_tick,
                "allocation": tier.allocation,
                "active": i == active,
            }
            for i, tier in enumerate(tiers)
        ]
