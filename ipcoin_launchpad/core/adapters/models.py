from typing import Literal

from pydantic import BaseModel


class EventBase(BaseModel):
    # Filled in by Chain.emit; callers may construct events without them.
    emitter: str = "unknown"
    timestamp: int | None = None


class TierOpened(EventBase):
    type: Literal["TIER_OPENED"] = "TIER_OPENED"
    token: str
    pool: str
    tick_lower: int
    tick_upper: int
    liquidity: int
    token_amount: int


class PositionCollected(EventBase):
    type: Literal["POSITION_COLLECTED"] = "POSITION_COLLECTED"
    pool: str
    tick_lower: int
    tick_upper: int
    amount0: int
    amount1: int


class Harvested(EventBase):
    type: Literal["HARVESTED"] = "HARVESTED"
    token: str
    tier_index: int | None = None
    pairing_collected: int = 0
    token_collected: int = 0
    token_burned: int = 0
    token_promoted: int = 0
    buyback_amount: int = 0
    owner_amount: int = 0
    treasury_amount: int = 0


class VestingScheduleCreated(EventBase):
    type: Literal["VESTING_SCHEDULE_CREATED"] = "VESTING_SCHEDULE_CREATED"
    token: str
    total: int
    start: int
    end: int


class VestedClaimed(EventBase):
    type: Literal["VESTED_CLAIMED"] = "VESTED_CLAIMED"
    token: str
    recipient: str
    token_amount: int
    pairing_amount: int


class BidWallRepositioned(EventBase):
    type: Literal["BID_WALL_REPOSITIONED"] = "BID_WALL_REPOSITIONED"
    token: str
    tick_lower: int
    tick_upper: int
    collected_token: int
    collected_pairing: int
    burned: int
    funded: int
    liquidity: int


class TokenLinked(EventBase):
    type: Literal["TOKEN_LINKED"] = "TOKEN_LINKED"
    token: str
    ip_asset_id: str


class RecipientTransferProposed(EventBase):
    type: Literal["RECIPIENT_TRANSFER_PROPOSED"] = "RECIPIENT_TRANSFER_PROPOSED"
    ip_asset_id: str
    current: str | None
    pending: str


class RecipientUpdated(EventBase):
    type: Literal["RECIPIENT_UPDATED"] = "RECIPIENT_UPDATED"
    ip_asset_id: str
    previous: str | None
    recipient: str


Event = (
    TierOpened
    | PositionCollected
    | Harvested
    | VestingScheduleCreated
    | VestedClaimed
    | BidWallRepositioned
    | TokenLinked
    | RecipientTransferProposed
    | RecipientUpdated
)


class HarvestResult(BaseModel):
    token: str
    ok: bool
    summary: Harvested | None = None
    error: str | None = None
    error_code: str | None = None
