from __future__ import annotations

import pytest

from ipcoin_launchpad.contracts.ip_registry import IpRecipientRegistry
from ipcoin_launchpad.core.adapters.models import RecipientTransferProposed, RecipientUpdated
from ipcoin_launchpad.core.constants import ZERO_ADDRESS
from ipcoin_launchpad.core.errors import AuthorizationError, ConfigurationError, StateError
from ipcoin_launchpad.testing.launchpad import IP_ASSET, OPERATOR, RECIPIENT

NEXT_RECIPIENT = "0x7000000000000000000000000000000000000007"
STRANGER = "0x9000000000000000000000000000000000000009"


@pytest.fixture
def registry(chain) -> IpRecipientRegistry:
    registry = IpRecipientRegistry(chain, OPERATOR)
    registry.grant_operator(OPERATOR, OPERATOR)
    return registry


@pytest.fixture
def bound(registry) -> IpRecipientRegistry:
    registry.bind_recipient(OPERATOR, IP_ASSET, RECIPIENT)
    return registry


def test_owner_manages_operators(registry):
    registry.grant_operator(OPERATOR, STRANGER)
    assert registry.is_operator(STRANGER)
    registry.revoke_operator(OPERATOR, STRANGER)
    assert not registry.is_operator(STRANGER)


def test_only_owner_grants_operators(registry):
    with pytest.raises(AuthorizationError):
        registry.grant_operator(STRANGER, STRANGER)
    assert not registry.is_operator(STRANGER)


def test_zero_owner_is_rejected(chain):
    with pytest.raises(ConfigurationError):
        IpRecipientRegistry(chain, ZERO_ADDRESS)


def test_bind_recipient(bound, chain):
    assert bound.recipient_of(IP_ASSET) == RECIPIENT
    assert bound.pending_recipient_of(IP_ASSET) is None
    event = chain.events_of(RecipientUpdated)[-1]
    assert (event.previous, event.recipient) == (None, RECIPIENT)


def test_bind_requires_operator(registry):
    with pytest.raises(AuthorizationError):
        registry.bind_recipient(STRANGER, IP_ASSET, RECIPIENT)
    assert registry.recipient_of(IP_ASSET) is None


def test_bind_rejects_zero_values(registry):
    with pytest.raises(ConfigurationError):
        registry.bind_recipient(OPERATOR, 0, RECIPIENT)
    with pytest.raises(ConfigurationError):
        registry.bind_recipient(OPERATOR, IP_ASSET, ZERO_ADDRESS)
    assert registry.recipient_of(IP_ASSET) is None


def test_bind_only_once(bound):
    with pytest.raises(StateError) as exc_info:
        bound.bind_recipient(OPERATOR, IP_ASSET, NEXT_RECIPIENT)
    assert exc_info.value.code == "already_bound"


def test_two_step_transfer(bound, chain):
    bound.propose_recipient(RECIPIENT, IP_ASSET, NEXT_RECIPIENT)
    assert bound.recipient_of(IP_ASSET) == RECIPIENT
    assert bound.pending_recipient_of(IP_ASSET) == NEXT_RECIPIENT
    assert chain.events_of(RecipientTransferProposed)[-1].pending == NEXT_RECIPIENT

    bound.accept_recipient(NEXT_RECIPIENT, IP_ASSET)

    assert bound.recipient_of(IP_ASSET) == NEXT_RECIPIENT
    assert bound.pending_recipient_of(IP_ASSET) is None
    event = chain.events_of(RecipientUpdated)[-1]
    assert (event.previous, event.recipient) == (RECIPIENT, NEXT_RECIPIENT)


def test_stranger_cannot_propose(bound):
    with pytest.raises(AuthorizationError):
        bound.propose_recipient(STRANGER, IP_ASSET, STRANGER)


def test_accept_without_pending_transfer(bound):
    with pytest.raises(StateError) as exc_info:
        bound.accept_recipient(RECIPIENT, IP_ASSET)
    assert exc_info.value.code == "no_pending"


def test_accept_from_wrong_caller(bound):
    bound.propose_recipient(OPERATOR, IP_ASSET, NEXT_RECIPIENT)
    with pytest.raises(StateError) as exc_info:
        bound.accept_recipient(STRANGER, IP_ASSET)
    assert exc_info.value.code == "not_pending_recipient"
    assert bound.recipient_of(IP_ASSET) == RECIPIENT


def test_cancel_transfer(bound):
    bound.propose_recipient(RECIPIENT, IP_ASSET, NEXT_RECIPIENT)
    bound.cancel_transfer(RECIPIENT, IP_ASSET)
    assert bound.pending_recipient_of(IP_ASSET) is None
    with pytest.raises(StateError):
        bound.accept_recipient(NEXT_RECIPIENT, IP_ASSET)
