__version__ = "0.1.0"

from ipcoin_launchpad.core import (
    BaseAdapter,
    Chain,
    Contract,
    LaunchpadConfig,
    RevertError,
)

__all__ = [
    "__version__",
    "BaseAdapter",
    "Chain",
    "Contract",
    "LaunchpadConfig",
    "RevertError",
]
