"""Packed per-token metadata word.

Layout (least-significant first)::

    bits [0, 160)    IP asset identifier
    bits [160, 184)  tick 1
    bits [184, 208)  tick 2
    bits [208, 232)  tick 3
    bits [232, 256)  tick 4

Ticks are 24-bit two's complement. A field equal to zero ends the list, so an
actual tick of zero is stored as ``TICK_ZERO_SENTINEL``.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

from eth_utils import to_checksum_address

from ipcoin_launchpad.core.constants import MAX_LIQUIDITY_TIERS

ID_BITS = 160
TICK_BITS = 24
ID_MASK = (1 << ID_BITS) - 1
TICK_MASK = (1 << TICK_BITS) - 1
TICKS_MASK = ((1 << (TICK_BITS * MAX_LIQUIDITY_TIERS)) - 1) << ID_BITS
TICK_ZERO_SENTINEL = 0x777777
INT24_MIN = -(1 << (TICK_BITS - 1))
INT24_MAX = (1 << (TICK_BITS - 1)) - 1


def _to_field(tick: int) -> int:
    if not INT24_MIN <= tick <= INT24_MAX:
        raise ValueError(f"tick {tick} does not fit in {TICK_BITS} bits")
    if tick == TICK_ZERO_SENTINEL:
        raise ValueError(f"tick {tick} collides with the zero sentinel")
    if tick == 0:
        return TICK_ZERO_SENTINEL
    return tick & TICK_MASK


def _from_field(raw: int) -> int:
    if raw == TICK_ZERO_SENTINEL:
        return 0
    if raw & (1 << (TICK_BITS - 1)):
        return raw - (1 << TICK_BITS)
    return raw


def _check_identifier(ip_asset_id: int) -> int:
    ip_asset_id = int(ip_asset_id)
    if not 0 <= ip_asset_id <= ID_MASK:
        raise ValueError(f"identifier {ip_asset_id:#x} does not fit in {ID_BITS} bits")
    return ip_asset_id


def encode_metadata(ip_asset_id: int, ticks: Sequence[int]) -> int:
    if len(ticks) > MAX_LIQUIDITY_TIERS:
        raise ValueError(
            f"at most {MAX_LIQUIDITY_TIERS} ticks fit in a metadata word, got {len(ticks)}"
        )
    word = _check_identifier(ip_asset_id)
    for i, tick in enumerate(ticks):
        word |= _to_field(int(tick)) << (ID_BITS + TICK_BITS * i)
    return word


def decode_metadata(word: int) -> tuple[int, list[int]]:
    word = int(word)
    ticks: list[int] = []
    for i in range(MAX_LIQUIDITY_TIERS):
        raw = (word >> (ID_BITS + TICK_BITS * i)) & TICK_MASK
        if raw == 0:
            break
        ticks.append(_from_field(raw))
    return word & ID_MASK, ticks


def update_identifier(word: int, ip_asset_id: int) -> int:
    """Swap the identifier bits, leaving every tick field untouched."""
    return (int(word) & TICKS_MASK) | _check_identifier(ip_asset_id)


@dataclass(frozen=True)
class TokenMetadata:
    ip_asset_id: int = 0
    ticks: tuple[int, ...] = field(default_factory=tuple)

    def pack(self) -> int:
        return encode_metadata(self.ip_asset_id, self.ticks)

    @classmethod
    def unpack(cls, word: int) -> TokenMetadata:
        ip_asset_id, ticks = decode_metadata(word)
        return cls(ip_asset_id=ip_asset_id, ticks=tuple(ticks))

    @property
    def ip_asset_address(self) -> str | None:
        if not self.ip_asset_id:
            return None
        return int_to_address(self.ip_asset_id)


def int_to_address(value: int) -> str:
    return to_checksum_address(f"0x{int(value) & ID_MASK:040x}")


def address_to_int(address: str | int) -> int:
    if isinstance(address, int):
        return _check_identifier(address)
    return _check_identifier(int(str(address), 16))
