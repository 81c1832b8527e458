"""Fungible token balances with conserved totals and the anti-snipe policy."""

from __future__ import annotations

from dataclasses import dataclass, field

from eth_utils import to_checksum_address

from ipcoin_launchpad.core.chain import Chain, Contract
from ipcoin_launchpad.core.constants import ZERO_ADDRESS
from ipcoin_launchpad.core.errors import (
    ConfigurationError,
    InsufficientBalanceError,
    TransferCapExceededError,
    UnknownTokenError,
)


@dataclass
class TokenInfo:
    address: str
    name: str
    symbol: str
    decimals: int = 18
    total_supply: int = 0
    balances: dict[str, int] = field(default_factory=dict)


@dataclass
class TransferPolicy:
    pool: str
    creator: str
    launched_at: int
    window: int
    max_per_window: int
    exempt: set[str] = field(default_factory=set)
    received: dict[str, int] = field(default_factory=dict)

    def active(self, now: int) -> bool:
        return (
            self.window > 0
            and self.max_per_window > 0
            and now < self.launched_at + self.window
        )


class TokenLedger(Contract):
    def __init__(self, chain: Chain):
        super().__init__(chain, label="token_ledger")

    @property
    def _tokens(self) -> dict[str, TokenInfo]:
        return self._store("tokens")

    @property
    def _policies(self) -> dict[str, TransferPolicy]:
        return self._store("policies")

    def _token(self, token: str) -> TokenInfo:
        info = self._tokens.get(to_checksum_address(token))
        if info is None:
            raise UnknownTokenError(f"Unknown token {token}")
        return info

    def create_token(
        self,
        name: str,
        symbol: str,
        *,
        decimals: int = 18,
        address: str | None = None,
    ) -> str:
        addr = (
            to_checksum_address(address)
            if address
            else self.chain.new_address(f"token:{symbol}")
        )
        if addr == ZERO_ADDRESS:
            raise ConfigurationError("token address cannot be zero")
        if addr in self._tokens:
            raise ConfigurationError(f"token {addr} already exists")
        self._tokens[addr] = TokenInfo(
            address=addr, name=name, symbol=symbol, decimals=int(decimals)
        )
        self.logger.debug(f"Created token {symbol} at {addr}")
        return addr

    def exists(self, token: str) -> bool:
        return to_checksum_address(token) in self._tokens

    def info(self, token: str) -> TokenInfo:
        return self._token(token)

    def balance_of(self, token: str, holder: str) -> int:
        return self._token(token).balances.get(to_checksum_address(holder), 0)

    def total_supply(self, token: str) -> int:
        return self._token(token).total_supply

    def mint(self, token: str, to: str, amount: int) -> None:
        if amount < 0:
            raise ValueError("amount must be non-negative")
        info = self._token(token)
        to = to_checksum_address(to)
        info.balances[to] = info.balances.get(to, 0) + int(amount)
        info.total_supply += int(amount)

    def burn(self, token: str, holder: str, amount: int) -> None:
        if amount < 0:
            raise ValueError("amount must be non-negative")
        info = self._token(token)
        holder = to_checksum_address(holder)
        balance = info.balances.get(holder, 0)
        if balance < amount:
            raise InsufficientBalanceError(
                f"{holder} holds {balance} {info.symbol}, cannot burn {amount}"
            )
        info.balances[holder] = balance - int(amount)
        info.total_supply -= int(amount)

    def transfer(self, token: str, sender: str, recipient: str, amount: int) -> None:
        if amount < 0:
            raise ValueError("amount must be non-negative")
        info = self._token(token)
        sender = to_checksum_address(sender)
        recipient = to_checksum_address(recipient)
        if recipient == ZERO_ADDRESS:
            raise ConfigurationError("cannot transfer to the zero address")
        balance = info.balances.get(sender, 0)
        if balance < amount:
            raise InsufficientBalanceError(
                f"{sender} holds {balance} {info.symbol}, cannot send {amount}"
            )
        self._check_policy(info.address, sender, recipient, int(amount))
        info.balances[sender] = balance - int(amount)
        info.balances[recipient] = info.balances.get(recipient, 0) + int(amount)

    # ── anti-snipe ───────────────────────────────────────────────────────

    def set_transfer_policy(
        self,
        token: str,
        *,
        pool: str,
        creator: str,
        window: int,
        max_per_window: int,
        exempt: set[str] | None = None,
    ) -> TransferPolicy:
        info = self._token(token)
        policy = TransferPolicy(
            pool=to_checksum_address(pool),
            creator=to_checksum_address(creator),
            launched_at=self.chain.timestamp,
            window=int(window),
            max_per_window=int(max_per_window),
            exempt={to_checksum_address(a) for a in (exempt or set())},
        )
        self._policies[info.address] = policy
        return policy

    def exempt_from_policy(self, token: str, account: str) -> None:
        policy = self._policies.get(self._token(token).address)
        if policy is not None:
            policy.exempt.add(to_checksum_address(account))

    def transfer_policy(self, token: str) -> TransferPolicy | None:
        return self._policies.get(self._token(token).address)

    def _check_policy(self, token: str, sender: str, recipient: str, amount: int) -> None:
        policy = self._policies.get(token)
        if policy is None or sender != policy.pool:
            return
        if not policy.active(self.chain.timestamp):
            return
        if recipient == policy.creator or recipient in policy.exempt:
            return
        received = policy.received.get(recipient, 0) + amount
        if received > policy.max_per_window:
            raise TransferCapExceededError(
                f"{recipient} would receive {received} during the launch window "
                f"(cap {policy.max_per_window})"
            )
        policy.received[recipient] = received
