"""Linear vesting of each token's unallocated float for its IP-asset recipient.

The vault also accumulates the recipient's share of pairing-asset fees per
token and pays it out on every claim.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Protocol

from eth_utils import to_checksum_address

from ipcoin_launchpad.contracts.ip_registry import IpRecipientRegistry
from ipcoin_launchpad.core.adapters.models import VestedClaimed, VestingScheduleCreated
from ipcoin_launchpad.core.chain import Chain, Contract, atomic, non_reentrant
from ipcoin_launchpad.core.errors import (
    AuthorizationError,
    ConfigurationError,
    RecipientNotBoundError,
    ZeroAllocationError,
)
from ipcoin_launchpad.core.tokens import TokenLedger


class IpAssetResolver(Protocol):
    address: str

    def ip_asset_of(self, token: str) -> int: ...


@dataclass
class VestingSchedule:
    is_set: bool = False
    start: int = 0
    end: int = 0
    remaining: int = 0
    released: int = 0

    @property
    def total(self) -> int:
        return self.remaining + self.released


def linear_vested_amount(total: int, start: int, end: int, timestamp: int) -> int:
    if timestamp < start:
        return 0
    if timestamp >= end:
        return total
    return total * (timestamp - start) // (end - start)


class VestingVault(Contract):
    def __init__(
        self,
        chain: Chain,
        ledger: TokenLedger,
        registry: IpRecipientRegistry,
        pairing_token: str,
        *,
        vesting_duration: int,
    ):
        super().__init__(chain, label="vesting_vault")
        if vesting_duration <= 0:
            raise ConfigurationError("vesting_duration must be positive")
        self.ledger = ledger
        self.registry = registry
        self.pairing_token = to_checksum_address(pairing_token)
        self.vesting_duration = int(vesting_duration)
        self.orchestrator: IpAssetResolver | None = None

    def bind_orchestrator(self, orchestrator: IpAssetResolver) -> None:
        if self.orchestrator is not None:
            raise ConfigurationError("vesting vault already has an orchestrator")
        self.orchestrator = orchestrator

    @property
    def _schedules(self) -> dict[str, VestingSchedule]:
        return self._store("schedules")

    @property
    def _pending(self) -> dict[str, int]:
        return self._store("pending")

    def _require_orchestrator(self, caller: str) -> None:
        orchestrator = self.orchestrator
        if orchestrator is None or to_checksum_address(caller) != orchestrator.address:
            raise AuthorizationError(f"{caller} is not the vesting orchestrator")

    # ── read-only ────────────────────────────────────────────────────────

    def schedule(self, token: str) -> VestingSchedule:
        schedule = self._schedules.get(to_checksum_address(token))
        return replace(schedule) if schedule else VestingSchedule()

    def has_schedule(self, token: str) -> bool:
        return to_checksum_address(token) in self._schedules

    def remaining(self, token: str) -> int:
        return self.schedule(token).remaining

    def released(self, token: str) -> int:
        return self.schedule(token).released

    def pending_pairing(self, token: str) -> int:
        return self._pending.get(to_checksum_address(token), 0)

    def vested_amount(self, token: str, timestamp: int) -> int:
        s = self.schedule(token)
        if not s.is_set:
            return 0
        return linear_vested_amount(s.total, s.start, s.end, int(timestamp))

    def releasable(self, token: str) -> int:
        return self.vested_amount(token, self.chain.timestamp) - self.released(token)

    # ── mutations ────────────────────────────────────────────────────────

    @atomic
    def create_schedule(self, caller: str, token: str) -> VestingSchedule:
        """Start vesting the vault's current balance of ``token``.

        No-op when the token already has a schedule.
        """
        self._require_orchestrator(caller)
        token = to_checksum_address(token)
        existing = self._schedules.get(token)
        if existing is not None:
            return replace(existing)

        total = self.ledger.balance_of(token, self.address)
        if total == 0:
            raise ZeroAllocationError(f"nothing to vest for {token}")

        start = self.chain.timestamp
        schedule = VestingSchedule(
            is_set=True,
            start=start,
            end=start + self.vesting_duration,
            remaining=total,
            released=0,
        )
        self._schedules[token] = schedule
        self.emit(
            VestingScheduleCreated(
                token=token, total=total, start=schedule.start, end=schedule.end
            )
        )
        self.logger.info(f"Vesting {total} of {token} until {schedule.end}")
        return replace(schedule)

    @atomic
    def deposit_pending(self, payer: str, token: str, amount: int) -> int:
        if amount < 0:
            raise ValueError("amount must be non-negative")
        token = to_checksum_address(token)
        if amount == 0:
            return self._pending.get(token, 0)
        self.ledger.transfer(self.pairing_token, payer, self.address, int(amount))
        self._pending[token] = self._pending.get(token, 0) + int(amount)
        return self._pending[token]

    @non_reentrant
    @atomic
    def claim(self, token: str) -> tuple[int, int]:
        """Pay the recipient everything vested so far plus pending fees.

        Returns ``(token_amount, pairing_amount)``.
        """
        token = to_checksum_address(token)
        ip_asset_id = self.orchestrator.ip_asset_of(token) if self.orchestrator else 0
        recipient = self.registry.recipient_of(ip_asset_id) if ip_asset_id else None
        if recipient is None:
            raise RecipientNotBoundError(f"no IP-asset recipient for {token}")

        token_amount = 0
        schedule = self._schedules.get(token)
        if schedule is not None:
            releasable = (
                linear_vested_amount(
                    schedule.total, schedule.start, schedule.end, self.chain.timestamp
                )
                - schedule.released
            )
            schedule.remaining -= releasable
            schedule.released += releasable
            # anything above the unreleased total was credited outside the schedule
            token_amount = self.ledger.balance_of(token, self.address) - schedule.remaining

        pairing_amount = self._pending.pop(token, 0)

        if token_amount > 0:
            self.ledger.transfer(token, self.address, recipient, token_amount)
        if pairing_amount > 0:
            self.ledger.transfer(self.pairing_token, self.address, recipient, pairing_amount)

        self.emit(
            VestedClaimed(
                token=token,
                recipient=recipient,
                token_amount=token_amount,
                pairing_amount=pairing_amount,
            )
        )
        self.logger.info(
            f"Claimed {token_amount} {token} and {pairing_amount} pairing for {recipient}"
        )
        return token_amount, pairing_amount
