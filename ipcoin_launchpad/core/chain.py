"""In-memory ledger that gives every entry point transactional semantics.

Components keep their records in namespaced stores owned by the ``Chain``
and must look them up through ``Chain.storage`` on every access: a rollback
swaps the stores for the snapshot taken when the transaction began.
"""

from __future__ import annotations

import copy
import functools
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any

from eth_utils import keccak, to_checksum_address
from loguru import logger

from ipcoin_launchpad.core.adapters.models import EventBase
from ipcoin_launchpad.core.errors import ReentrancyError


class Chain:
    def __init__(self, *, timestamp: int | None = None):
        self.timestamp = int(time.time()) if timestamp is None else int(timestamp)
        self._storage: dict[str, dict[Any, Any]] = {}
        self._events: list[EventBase] = []
        self._nonce = 0
        self._depth = 0
        self.logger = logger.bind(component="chain")

    # ── storage ──────────────────────────────────────────────────────────

    def storage(self, namespace: str) -> dict[Any, Any]:
        return self._storage.setdefault(namespace, {})

    @contextmanager
    def transaction(self) -> Iterator[None]:
        snapshot = copy.deepcopy(self._storage)
        n_events = len(self._events)
        self._depth += 1
        try:
            yield
        except BaseException:
            self._storage.clear()
            self._storage.update(snapshot)
            del self._events[n_events:]
            self.logger.debug(f"Rolled back transaction at depth {self._depth}")
            raise
        finally:
            self._depth -= 1

    @property
    def in_transaction(self) -> bool:
        return self._depth > 0

    # ── events ───────────────────────────────────────────────────────────

    def emit(self, emitter: str, event: EventBase) -> EventBase:
        event.emitter = emitter
        event.timestamp = self.timestamp
        self._events.append(event)
        return event

    @property
    def events(self) -> list[EventBase]:
        return list(self._events)

    def events_of(self, event_type: type[EventBase]) -> list[EventBase]:
        return [e for e in self._events if isinstance(e, event_type)]

    # ── clock / addresses ────────────────────────────────────────────────

    def warp(self, seconds: int) -> int:
        if seconds < 0:
            raise ValueError("cannot move the clock backwards")
        self.timestamp += int(seconds)
        return self.timestamp

    def new_address(self, label: str) -> str:
        self._nonce += 1
        digest = keccak(text=f"{label}:{self._nonce}")
        return to_checksum_address(digest[-20:])


def atomic(fn: Callable) -> Callable:
    """Run a contract method inside ``self.chain.transaction()``."""

    @functools.wraps(fn)
    def wrapper(self: Any, *args: Any, **kwargs: Any) -> Any:
        with self.chain.transaction():
            return fn(self, *args, **kwargs)

    return wrapper


def non_reentrant(fn: Callable) -> Callable:
    @functools.wraps(fn)
    def wrapper(self: Any, *args: Any, **kwargs: Any) -> Any:
        if getattr(self, "_entered", False):
            raise ReentrancyError(f"{fn.__name__} re-entered {self.__class__.__name__}")
        self._entered = True
        try:
            return fn(self, *args, **kwargs)
        finally:
            self._entered = False

    return wrapper


class Contract:
    """Something with an address on the chain that owns namespaced storage."""

    def __init__(self, chain: Chain, *, address: str | None = None, label: str = ""):
        self.chain = chain
        self.address = (
            to_checksum_address(address)
            if address
            else chain.new_address(label or self.__class__.__name__)
        )
        self._entered = False
        self.logger = logger.bind(contract=self.__class__.__name__)

    def _store(self, name: str) -> dict[Any, Any]:
        return self.chain.storage(f"{self.address}:{name}")

    def emit(self, event: EventBase) -> EventBase:
        return self.chain.emit(self.address, event)
