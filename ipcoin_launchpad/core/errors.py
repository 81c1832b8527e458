from __future__ import annotations


class RevertError(RuntimeError):
    """A call that failed and left no state behind.

    ``code`` is a short machine-readable reason, ``message`` the human one.
    """

    code: str = "reverted"

    def __init__(self, message: str | None = None, *, code: str | None = None):
        if code is not None:
            self.code = code
        super().__init__(message or self.code)


# ── configuration ────────────────────────────────────────────────────────


class ConfigurationError(RevertError, ValueError):
    code = "invalid_configuration"


# ── authorization ────────────────────────────────────────────────────────


class AuthorizationError(RevertError):
    code = "unauthorized"


class ReentrancyError(RevertError):
    code = "reentrant_call"


# ── state ────────────────────────────────────────────────────────────────


class StateError(RevertError):
    code = "invalid_state"


class NoTiersConfiguredError(StateError):
    code = "no_tiers"


class RecipientNotBoundError(StateError):
    code = "recipient_not_bound"


class ZeroAllocationError(StateError):
    code = "zero_allocation"


class UnknownTokenError(StateError):
    code = "unknown_token"


# ── arithmetic / range ───────────────────────────────────────────────────


class TickRangeError(RevertError, ValueError):
    code = "tick_out_of_range"


# ── collaborators ────────────────────────────────────────────────────────


class InsufficientBalanceError(RevertError):
    code = "insufficient_balance"


class TransferCapExceededError(RevertError):
    code = "transfer_cap_exceeded"


class PoolError(RevertError):
    code = "pool_error"


class PoolLockedError(PoolError):
    code = "pool_locked"
