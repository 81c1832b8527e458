import json
import os
from pathlib import Path
from typing import Any

from eth_utils import is_address, to_checksum_address
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator, model_validator

from ipcoin_launchpad.core.constants import (
    DEFAULT_POOL_FEE,
    DEFAULT_TICK_SPACING,
    DEFAULT_TOKEN_SUPPLY,
    DEFAULT_VESTING_DURATION,
    MANTISSA,
    PRECISION,
    TICK_SPACING,
    ZERO_ADDRESS,
)
from ipcoin_launchpad.core.errors import ConfigurationError

_CONFIG_ENV_KEYS = ("IPCOIN_CONFIG_PATH", "IPCOIN_CONFIG")
_DEFAULT_CONFIG_FILENAME = "config.json"
_LAUNCHPAD_KEY = "launchpad"


def _find_project_root(start: Path) -> Path | None:
    cur = start.resolve()
    for parent in [cur, *cur.parents]:
        if (parent / "pyproject.toml").exists():
            return parent
    return None


def _project_root() -> Path | None:
    return _find_project_root(Path.cwd()) or _find_project_root(Path(__file__).parent)


def resolve_config_path(path: str | Path | None = None) -> Path:
    if path is not None:
        return Path(path).expanduser()

    env_path = next(
        (os.getenv(k, "").strip() for k in _CONFIG_ENV_KEYS if os.getenv(k)), ""
    )
    if env_path:
        p = Path(env_path).expanduser()
        if p.is_absolute():
            return p
        root = _project_root()
        return (root / p) if root else p

    root = _project_root()
    return (root / _DEFAULT_CONFIG_FILENAME) if root else Path(_DEFAULT_CONFIG_FILENAME)


def load_config_json(
    path: str | Path | None = None, *, require_exists: bool = False
) -> dict[str, Any]:
    cfg_path = resolve_config_path(path)
    if not cfg_path.exists():
        if require_exists:
            raise FileNotFoundError(f"Config file not found: {cfg_path}")
        return {}
    try:
        return json.loads(cfg_path.read_text())
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Config file {cfg_path} is not valid JSON") from exc


CONFIG: dict[str, Any] = load_config_json()


def set_config(config: dict[str, Any]) -> None:
    """Replace the global CONFIG dict in-place.

    This allows code that imported CONFIG at module import time to see updates.
    """
    CONFIG.clear()
    CONFIG.update(config)


def load_config(
    path: str | Path | None = None, *, require_exists: bool = False
) -> None:
    """Load config from disk into the global CONFIG dict."""
    set_config(load_config_json(path, require_exists=require_exists))


class LaunchpadConfig(BaseModel):
    """Deployment-time constants of a launchpad. Immutable once built."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    precision: int = PRECISION
    burn_share: int = 500_000
    ip_owner_share: int = 400_000
    buyback_share: int = 300_000
    bid_wall_funding_cap: int = 10 * MANTISSA
    vesting_duration: int = DEFAULT_VESTING_DURATION
    pool_fee: int = DEFAULT_POOL_FEE
    tick_spacing: int = DEFAULT_TICK_SPACING
    token_supply: int = DEFAULT_TOKEN_SUPPLY
    anti_snipe_window: int = 0
    anti_snipe_max_transfer: int = 0
    treasury: str

    @field_validator("treasury")
    @classmethod
    def _treasury_address(cls, value: str) -> str:
        if not is_address(value):
            raise ValueError(f"treasury {value!r} is not an address")
        value = to_checksum_address(value)
        if value == ZERO_ADDRESS:
            raise ValueError("treasury cannot be the zero address")
        return value

    @model_validator(mode="after")
    def _check_shares(self) -> "LaunchpadConfig":
        if self.precision <= 0:
            raise ValueError("precision must be positive")
        for name in ("burn_share", "ip_owner_share", "buyback_share"):
            share = getattr(self, name)
            if not 0 <= share <= self.precision:
                raise ValueError(f"{name}={share} outside [0, {self.precision}]")
        if self.ip_owner_share + self.buyback_share > self.precision:
            raise ValueError(
                f"ip_owner_share + buyback_share = "
                f"{self.ip_owner_share + self.buyback_share} exceeds {self.precision}"
            )
        if TICK_SPACING.get(self.pool_fee) != self.tick_spacing:
            raise ValueError(
                f"tick_spacing {self.tick_spacing} does not match fee tier {self.pool_fee}"
            )
        if self.vesting_duration <= 0:
            raise ValueError("vesting_duration must be positive")
        if self.token_supply <= 0:
            raise ValueError("token_supply must be positive")
        if self.bid_wall_funding_cap < 0:
            raise ValueError("bid_wall_funding_cap must be non-negative")
        if self.anti_snipe_window < 0 or self.anti_snipe_max_transfer < 0:
            raise ValueError("anti-snipe settings must be non-negative")
        return self

    @classmethod
    def build(cls, **values: Any) -> "LaunchpadConfig":
        try:
            return cls(**values)
        except ValidationError as exc:
            raise ConfigurationError(str(exc)) from exc


def get_launchpad_config(overrides: dict[str, Any] | None = None) -> LaunchpadConfig:
    values = dict(CONFIG.get(_LAUNCHPAD_KEY, {}))
    values.update(overrides or {})
    return LaunchpadConfig.build(**values)
