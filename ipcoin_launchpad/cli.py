"""Command line tools for the IP-coin launchpad.

Usage:
  ipcoin metadata encode --id 0x123 --ticks=-1,2,-3
  ipcoin metadata decode 0x000000fffffd000002ffffff...0123
  ipcoin vesting preview --total 1000000 --duration 7776000
  ipcoin simulate --ticks=-144000,-120000 --allocations 720000,250000 --buy 5
  ipcoin simulate --ticks=-144000 --allocations 900000 --ip-asset 0x6 --warp 7776000
  ipcoin config
"""

from __future__ import annotations

import json
import sys
from typing import Any, NoReturn

import click
from loguru import logger

from ipcoin_launchpad.contracts.deployment import deploy_launchpad
from ipcoin_launchpad.contracts.vesting_vault import linear_vested_amount
from ipcoin_launchpad.core.config import get_launchpad_config, load_config
from ipcoin_launchpad.core.constants import DEFAULT_VESTING_DURATION, MANTISSA
from ipcoin_launchpad.core.errors import RevertError
from ipcoin_launchpad.core.utils.token_metadata import (
    TokenMetadata,
    address_to_int,
)

DEFAULT_TREASURY = "0x000000000000000000000000000000000000dEaD"
SIMULATION_OPERATOR = "0x00000000000000000000000000000000000a11ce"
SIMULATION_TRADER = "0x0000000000000000000000000000000000000b0b"


def _echo_json(data: Any) -> None:
    click.echo(json.dumps(data, indent=2, default=str))


def _fail(exc: Exception) -> NoReturn:
    code = getattr(exc, "code", "invalid_input")
    _echo_json({"ok": False, "error": code, "details": str(exc)})
    sys.exit(1)


def _int_list(value: str | None) -> list[int]:
    if not value:
        return []
    return [int(part.strip(), 0) for part in value.split(",") if part.strip()]


@click.group(name="ipcoin", help="IP-coin launchpad tools.")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Path to a JSON config file (defaults to IPCOIN_CONFIG_PATH or config.json).",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    show_default=True,
)
def ipcoin_cli(config_path: str | None, log_level: str) -> None:
    logger.remove()
    logger.add(sys.stderr, level=str(log_level).upper())
    if config_path:
        load_config(config_path, require_exists=True)


# ── metadata ─────────────────────────────────────────────────────────────


@ipcoin_cli.group(name="metadata", help="Pack and unpack token metadata words.")
def metadata_cli() -> None:
    pass


@metadata_cli.command(name="encode", help="Pack an IP asset id and tier ticks.")
@click.option("--id", "ip_asset_id", default="0", show_default=True)
@click.option("--ticks", default="", help="Comma-separated start ticks, e.g. -1,2,-3.")
def encode_cmd(ip_asset_id: str, ticks: str) -> None:
    try:
        metadata = TokenMetadata(address_to_int(int(ip_asset_id, 0)), tuple(_int_list(ticks)))
        word = metadata.pack()
    except ValueError as exc:
        _fail(exc)
    click.echo(f"0x{word:064x}")


@metadata_cli.command(name="decode", help="Unpack a metadata word.")
@click.argument("word")
def decode_cmd(word: str) -> None:
    try:
        metadata = TokenMetadata.unpack(int(word, 0))
    except ValueError as exc:
        _fail(exc)
    _echo_json(
        {
            "ip_asset_id": hex(metadata.ip_asset_id),
            "ip_asset_address": metadata.ip_asset_address,
            "ticks": list(metadata.ticks),
        }
    )


# ── vesting ──────────────────────────────────────────────────────────────


@ipcoin_cli.group(name="vesting", help="Linear vesting helpers.")
def vesting_cli() -> None:
    pass


@vesting_cli.command(name="preview", help="Show the vested amount at sample timestamps.")
@click.option("--total", type=int, required=True)
@click.option("--start", type=int, default=0, show_default=True)
@click.option("--duration", type=int, default=DEFAULT_VESTING_DURATION, show_default=True)
@click.option("--at", "timestamps", type=int, multiple=True, help="Timestamp to sample.")
def preview_cmd(total: int, start: int, duration: int, timestamps: tuple[int, ...]) -> None:
    if duration <= 0:
        _fail(ValueError("duration must be positive"))
    end = start + duration
    points = list(timestamps) or [start + duration * q // 4 for q in range(5)]
    _echo_json(
        {
            "total": total,
            "start": start,
            "end": end,
            "points": [
                {"timestamp": t, "vested": linear_vested_amount(total, start, end, t)}
                for t in points
            ],
        }
    )


# ── simulation ───────────────────────────────────────────────────────────


@ipcoin_cli.command(
    name="simulate", help="Launch a token on an in-memory chain, trade it and harvest."
)
@click.option("--ticks", required=True, help="Comma-separated tier start ticks.")
@click.option("--allocations", required=True, help="Comma-separated tier allocations.")
@click.option("--buy", type=float, default=1.0, show_default=True, help="Pairing units to spend.")
@click.option("--treasury", default=None, help="Treasury address override.")
@click.option("--ip-asset", default=None, help="IP asset id to link and bind.")
@click.option(
    "--warp", type=int, default=0, show_default=True, help="Seconds to let pass before claiming."
)
def simulate_cmd(
    ticks: str,
    allocations: str,
    buy: float,
    treasury: str | None,
    ip_asset: str | None,
    warp: int,
) -> None:
    try:
        overrides: dict[str, Any] = {}
        if treasury:
            overrides["treasury"] = treasury
        config = get_launchpad_config(overrides or None)
    except RevertError as exc:
        if treasury:
            _fail(exc)
        config = get_launchpad_config({"treasury": DEFAULT_TREASURY})

    try:
        deployment = deploy_launchpad(config, owner=SIMULATION_OPERATOR)
        launchpad = deployment.launchpad
        token = launchpad.create_token(
            SIMULATION_OPERATOR,
            "Simulated IP Coin",
            "SIM",
            SIMULATION_OPERATOR,
            _int_list(ticks),
            _int_list(allocations),
            ip_asset_id=ip_asset,
        )
        if ip_asset:
            deployment.registry.bind_recipient(SIMULATION_OPERATOR, ip_asset, SIMULATION_OPERATOR)

        spend = int(buy * MANTISSA)
        received = 0
        if spend > 0:
            deployment.ledger.mint(deployment.pairing_token, SIMULATION_TRADER, spend)
            received = deployment.router.exact_input(
                SIMULATION_TRADER, launchpad.pool_of(token), deployment.pairing_token, spend
            )
        summary = launchpad.harvest(token)

        claimed = None
        if ip_asset:
            deployment.chain.warp(warp)
            token_amount, pairing_amount = deployment.vault.claim(token)
            claimed = {"token_amount": token_amount, "pairing_amount": pairing_amount}
    except (RevertError, ValueError) as exc:
        _fail(exc)

    wall = launchpad.bid_wall_of(token)
    _echo_json(
        {
            "ok": True,
            "token": token,
            "pool": launchpad.record(token).pool,
            "token_tick": launchpad.side_of(token).token_tick(),
            "bought": received,
            "active_tier": launchpad.active_tier(token)[0],
            "harvest": summary.model_dump(exclude={"emitter", "timestamp"}),
            "bid_wall": {
                "lower_tick": wall.lower_tick if wall else None,
                "pairing_balance": wall.pairing_balance() if wall else 0,
            },
            "vesting": {
                "total": deployment.vault.schedule(token).total,
                "pending_pairing": deployment.vault.pending_pairing(token),
                "claimed": claimed,
            },
            "events": [event.model_dump() for event in deployment.chain.events],
        }
    )


@ipcoin_cli.command(name="config", help="Print the effective launchpad configuration.")
def config_cmd() -> None:
    try:
        config = get_launchpad_config()
    except RevertError as exc:
        _fail(exc)
    _echo_json(config.model_dump())


def main():
    ipcoin_cli(standalone_mode=True)


if __name__ == "__main__":
    main()
