"""Operator capabilities and IP-asset recipient bindings."""

from __future__ import annotations

from dataclasses import dataclass

from eth_utils import to_checksum_address

from ipcoin_launchpad.core.adapters.models import (
    RecipientTransferProposed,
    RecipientUpdated,
)
from ipcoin_launchpad.core.chain import Chain, Contract, atomic
from ipcoin_launchpad.core.constants import ZERO_ADDRESS
from ipcoin_launchpad.core.errors import AuthorizationError, ConfigurationError, StateError
from ipcoin_launchpad.core.utils.token_metadata import address_to_int, int_to_address


@dataclass
class RecipientBinding:
    current: str | None = None
    pending: str | None = None


def _non_zero(address: str, what: str) -> str:
    address = to_checksum_address(address)
    if address == ZERO_ADDRESS:
        raise ConfigurationError(f"{what} cannot be the zero address")
    return address


class IpRecipientRegistry(Contract):
    def __init__(self, chain: Chain, owner: str):
        super().__init__(chain, label="ip_registry")
        self.owner = _non_zero(owner, "registry owner")

    @property
    def _operators(self) -> dict[str, bool]:
        return self._store("operators")

    @property
    def _bindings(self) -> dict[int, RecipientBinding]:
        return self._store("bindings")

    # ── operators ────────────────────────────────────────────────────────

    def is_operator(self, account: str) -> bool:
        return self._operators.get(to_checksum_address(account), False)

    def require_operator(self, caller: str) -> None:
        if not self.is_operator(caller):
            raise AuthorizationError(f"{caller} is not an operator")

    @atomic
    def grant_operator(self, caller: str, account: str) -> None:
        if to_checksum_address(caller) != self.owner:
            raise AuthorizationError("only the registry owner can grant operators")
        self._operators[_non_zero(account, "operator")] = True
        self.logger.info(f"Granted operator to {account}")

    @atomic
    def revoke_operator(self, caller: str, account: str) -> None:
        if to_checksum_address(caller) != self.owner:
            raise AuthorizationError("only the registry owner can revoke operators")
        self._operators.pop(to_checksum_address(account), None)
        self.logger.info(f"Revoked operator from {account}")

    # ── recipients ───────────────────────────────────────────────────────

    def recipient_of(self, ip_asset_id: int | str) -> str | None:
        binding = self._bindings.get(address_to_int(ip_asset_id))
        return binding.current if binding else None

    def pending_recipient_of(self, ip_asset_id: int | str) -> str | None:
        binding = self._bindings.get(address_to_int(ip_asset_id))
        return binding.pending if binding else None

    @atomic
    def bind_recipient(self, caller: str, ip_asset_id: int | str, recipient: str) -> None:
        """Set the first recipient of an IP asset. Later changes are two-step."""
        self.require_operator(caller)
        key = address_to_int(ip_asset_id)
        if key == 0:
            raise ConfigurationError("IP asset id cannot be zero")
        binding = self._bindings.setdefault(key, RecipientBinding())
        if binding.current is not None:
            raise StateError(
                f"IP asset {int_to_address(key)} already bound to {binding.current}",
                code="already_bound",
            )
        binding.current = _non_zero(recipient, "recipient")
        self.emit(
            RecipientUpdated(
                ip_asset_id=int_to_address(key), previous=None, recipient=binding.current
            )
        )

    @atomic
    def propose_recipient(
        self, caller: str, ip_asset_id: int | str, new_recipient: str
    ) -> None:
        key = address_to_int(ip_asset_id)
        binding = self._bindings.get(key)
        if binding is None or binding.current is None:
            raise StateError(f"IP asset {int_to_address(key)} has no recipient")
        caller = to_checksum_address(caller)
        if caller != binding.current and not self.is_operator(caller):
            raise AuthorizationError(f"{caller} cannot transfer this IP asset")
        binding.pending = _non_zero(new_recipient, "recipient")
        self.emit(
            RecipientTransferProposed(
                ip_asset_id=int_to_address(key),
                current=binding.current,
                pending=binding.pending,
            )
        )

    @atomic
    def accept_recipient(self, caller: str, ip_asset_id: int | str) -> None:
        key = address_to_int(ip_asset_id)
        binding = self._bindings.get(key)
        if binding is None or binding.pending is None:
            raise StateError(
                f"no pending transfer for {int_to_address(key)}", code="no_pending"
            )
        if to_checksum_address(caller) != binding.pending:
            raise StateError(
                f"{caller} is not the pending recipient", code="not_pending_recipient"
            )
        previous = binding.current
        binding.current, binding.pending = binding.pending, None
        self.emit(
            RecipientUpdated(
                ip_asset_id=int_to_address(key),
                previous=previous,
                recipient=binding.current,
            )
        )
        self.logger.info(f"Recipient of {int_to_address(key)} is now {binding.current}")

    @atomic
    def cancel_transfer(self, caller: str, ip_asset_id: int | str) -> None:
        key = address_to_int(ip_asset_id)
        binding = self._bindings.get(key)
        if binding is None or binding.pending is None:
            raise StateError(
                f"no pending transfer for {int_to_address(key)}", code="no_pending"
            )
        caller = to_checksum_address(caller)
        if caller != binding.current and not self.is_operator(caller):
            raise AuthorizationError(f"{caller} cannot cancel this transfer")
        binding.pending = None
