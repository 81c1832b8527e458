"""Tests for the ipcoin command line tools."""

from __future__ import annotations

import json
import sys

import pytest
from click.testing import CliRunner
from loguru import logger

from ipcoin_launchpad.cli import ipcoin_cli
from ipcoin_launchpad.core.config import CONFIG, set_config
from ipcoin_launchpad.testing.launchpad import TREASURY

WORD = "0x000000fffffd000002ffffff0000000000000000000000000000000000000123"


@pytest.fixture(autouse=True)
def restore_globals():
    saved = dict(CONFIG)
    yield
    set_config(saved)
    # the group rebinds loguru to the runner's stderr
    logger.remove()
    logger.add(sys.stderr)


def _invoke(*args: str):
    return CliRunner().invoke(ipcoin_cli, ["--log-level", "ERROR", *args])


def test_metadata_encode():
    result = _invoke("metadata", "encode", "--id", "0x123", "--ticks=-1,2,-3")
    assert result.exit_code == 0, result.output
    assert result.output.strip() == WORD


def test_metadata_encode_without_ticks():
    result = _invoke("metadata", "encode", "--id", "0x123")
    assert result.exit_code == 0, result.output
    assert int(result.output.strip(), 16) == 0x123


def test_metadata_decode():
    result = _invoke("metadata", "decode", WORD)
    assert result.exit_code == 0, result.output
    data = json.loads(result.output)
    assert data["ip_asset_id"] == "0x123"
    assert data["ticks"] == [-1, 2, -3]


def test_metadata_encode_rejects_five_ticks():
    result = _invoke("metadata", "encode", "--ticks", "1,2,3,4,5")
    assert result.exit_code == 1
    assert json.loads(result.output)["ok"] is False


def test_vesting_preview_quarters():
    result = _invoke("vesting", "preview", "--total", "1000", "--duration", "100")
    assert result.exit_code == 0, result.output
    data = json.loads(result.output)
    assert data["end"] == 100
    assert [p["vested"] for p in data["points"]] == [0, 250, 500, 750, 1000]


def test_vesting_preview_sample_points():
    result = _invoke(
        "vesting",
        "preview",
        "--total",
        "1000",
        "--start",
        "10",
        "--duration",
        "100",
        "--at",
        "0",
        "--at",
        "60",
        "--at",
        "500",
    )
    assert result.exit_code == 0, result.output
    points = json.loads(result.output)["points"]
    assert [(p["timestamp"], p["vested"]) for p in points] == [
        (0, 0),
        (60, 500),
        (500, 1000),
    ]


def test_vesting_preview_rejects_empty_duration():
    result = _invoke("vesting", "preview", "--total", "1", "--duration", "0")
    assert result.exit_code == 1


@pytest.mark.smoke
def test_smoke_simulate_launch_and_harvest():
    result = _invoke(
        "simulate",
        "--ticks=-144000,-120000",
        "--allocations",
        "720000,250000",
        "--buy",
        "5",
        "--treasury",
        TREASURY,
    )
    assert result.exit_code == 0, result.output
    data = json.loads(result.output)
    assert data["ok"] is True
    assert data["bought"] > 0
    assert data["active_tier"] == 0
    assert data["harvest"]["pairing_collected"] > 0
    assert data["bid_wall"]["lower_tick"] is not None
    assert data["vesting"]["total"] == 0
    assert data["vesting"]["claimed"] is None
    assert {"TIER_OPENED", "HARVESTED"} <= {e["type"] for e in data["events"]}


def test_simulate_rejects_bad_ladder():
    result = _invoke(
        "simulate",
        "--ticks=-144000",
        "--allocations",
        "2000000",
        "--treasury",
        TREASURY,
    )
    assert result.exit_code == 1
    data = json.loads(result.output)
    assert data == {
        "ok": False,
        "error": "invalid_configuration",
        "details": data["details"],
    }


def test_config_command_uses_given_file(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"launchpad": {"treasury": TREASURY, "burn_share": 1}}))
    result = _invoke("--config", str(path), "config")
    assert result.exit_code == 0, result.output
    data = json.loads(result.output)
    assert data["burn_share"] == 1
    assert data["treasury"] == TREASURY


@pytest.mark.smoke
def test_smoke_simulate_vesting_claim():
    result = _invoke(
        "simulate",
        "--ticks=-144000,-120000",
        "--allocations",
        "720000,250000",
        "--treasury",
        TREASURY,
        "--ip-asset",
        "0x6000000000000000000000000000000000000006",
        "--warp",
        "7776000",
    )
    assert result.exit_code == 0, result.output
    data = json.loads(result.output)
    vesting = data["vesting"]
    assert vesting["total"] > 0
    assert vesting["claimed"]["token_amount"] == vesting["total"]
    assert vesting["claimed"]["pairing_amount"] > 0
    assert vesting["pending_pairing"] == 0
    assert "VESTED_CLAIMED" in [event["type"] for event in data["events"]]
