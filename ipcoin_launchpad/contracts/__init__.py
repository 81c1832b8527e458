from ipcoin_launchpad.contracts.bid_wall import BidWall
from ipcoin_launchpad.contracts.deployment import LaunchpadDeployment, deploy_launchpad
from ipcoin_launchpad.contracts.ip_registry import IpRecipientRegistry
from ipcoin_launchpad.contracts.launchpad import Launchpad
from ipcoin_launchpad.contracts.liquidity_ladder import LiquidityLadder, LiquidityTier
from ipcoin_launchpad.contracts.vesting_vault import VestingSchedule, VestingVault

__all__ = [
    "BidWall",
    "IpRecipientRegistry",
    "Launchpad",
    "LaunchpadDeployment",
    "LiquidityLadder",
    "LiquidityTier",
    "VestingSchedule",
    "VestingVault",
    "deploy_launchpad",
]
