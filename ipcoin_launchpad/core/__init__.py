from ipcoin_launchpad.core.adapters.BaseAdapter import BaseAdapter
from ipcoin_launchpad.core.chain import Chain, Contract
from ipcoin_launchpad.core.config import LaunchpadConfig
from ipcoin_launchpad.core.errors import RevertError

__all__ = [
    "BaseAdapter",
    "Chain",
    "Contract",
    "LaunchpadConfig",
    "RevertError",
]
