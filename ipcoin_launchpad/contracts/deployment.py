"""Wire a complete launchpad onto a fresh (or given) chain."""

from __future__ import annotations

from dataclasses import dataclass

from eth_utils import to_checksum_address

from ipcoin_launchpad.contracts.ip_registry import IpRecipientRegistry
from ipcoin_launchpad.contracts.launchpad import Launchpad
from ipcoin_launchpad.contracts.vesting_vault import VestingVault
from ipcoin_launchpad.core.chain import Chain
from ipcoin_launchpad.core.config import LaunchpadConfig
from ipcoin_launchpad.core.pool import PoolFactory, SwapRouter
from ipcoin_launchpad.core.tokens import TokenLedger


@dataclass
class LaunchpadDeployment:
    chain: Chain
    ledger: TokenLedger
    factory: PoolFactory
    router: SwapRouter
    registry: IpRecipientRegistry
    vault: VestingVault
    launchpad: Launchpad
    pairing_token: str
    owner: str


def deploy_launchpad(
    config: LaunchpadConfig,
    *,
    owner: str,
    chain: Chain | None = None,
    pairing_token: str | None = None,
    pairing_symbol: str = "WIP",
) -> LaunchpadDeployment:
    """Deploy every contract and grant ``owner`` the operator capability.

    When ``pairing_token`` is given it is created on the ledger at that
    address, which decides whether launched tokens sort as token0 or token1.
    """
    chain = chain or Chain()
    owner = to_checksum_address(owner)
    ledger = TokenLedger(chain)
    pairing = ledger.create_token("Wrapped IP", pairing_symbol, address=pairing_token)
    factory = PoolFactory(chain, ledger)
    router = SwapRouter(chain, ledger, factory)
    registry = IpRecipientRegistry(chain, owner)
    registry.grant_operator(owner, owner)
    vault = VestingVault(
        chain, ledger, registry, pairing, vesting_duration=config.vesting_duration
    )
    launchpad = Launchpad(chain, ledger, factory, registry, vault, config, pairing)
    return LaunchpadDeployment(
        chain=chain,
        ledger=ledger,
        factory=factory,
        router=router,
        registry=registry,
        vault=vault,
        launchpad=launchpad,
        pairing_token=pairing,
        owner=owner,
    )
