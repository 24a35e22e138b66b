"""
Auction entities.

An AuctionItem is immutable: economic terms and time bounds are fixed
at creation. Status is never stored; it is derived from the time
bounds on every read (see cipherbid.core.auction.clock).
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from cipherbid.core.errors import ValidationError
from cipherbid.utils.validation import (
    to_decimal,
    validate_count,
    validate_string,
    validate_time_bounds,
)


class AuctionStatus(str, Enum):
    """Time-derived auction status."""
    UPCOMING = "upcoming"
    ACTIVE = "active"
    ENDED = "ended"


class BidStatus(str, Enum):
    """Lifecycle of an accepted encrypted bid."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    REVEALED = "revealed"


def derive_status(start_time: datetime, end_time: datetime, now: datetime) -> AuctionStatus:
    """
    Status as a pure function of the bounds and the reference instant.

    now == start_time is ACTIVE; now == end_time is ENDED.
    """
    if now < start_time:
        return AuctionStatus.UPCOMING
    if now < end_time:
        return AuctionStatus.ACTIVE
    return AuctionStatus.ENDED


@dataclass(frozen=True)
class AuctionItem:
    """
    A time-boxed sealed-bid auction.

    Only the catalogue may produce a copy with a higher
    encrypted_bids_count; every other field is fixed.
    """
    id: str
    title: str
    description: str
    starting_bid: Decimal
    start_time: datetime
    end_time: datetime
    category: str = ""
    image_url: str = ""
    current_highest_bid: Optional[Decimal] = None
    encrypted_bids_count: int = 0
    winner: Optional[str] = field(default=None, repr=False)

    def __post_init__(self):
        for name in ("id", "title"):
            valid, err = validate_string(getattr(self, name), name)
            if not valid:
                raise ValidationError(err)

        starting_bid = to_decimal(self.starting_bid)
        if starting_bid is None or starting_bid <= 0:
            raise ValidationError(
                f"starting_bid must be a positive number, got {self.starting_bid!r}",
                constraint="starting_bid",
            )
        object.__setattr__(self, "starting_bid", starting_bid)

        if self.current_highest_bid is not None:
            highest = to_decimal(self.current_highest_bid)
            if highest is None:
                raise ValidationError("current_highest_bid must be a number")
            object.__setattr__(self, "current_highest_bid", highest)

        valid, err = validate_time_bounds(self.start_time, self.end_time)
        if not valid:
            raise ValidationError(err, constraint="time_bounds")

        valid, err = validate_count(self.encrypted_bids_count, "encrypted_bids_count")
        if not valid:
            raise ValidationError(err)

    def status_at(self, now: datetime) -> AuctionStatus:
        """Derived status at the given instant."""
        return derive_status(self.start_time, self.end_time, now)

    def is_accepting_bids(self, now: datetime) -> bool:
        return self.status_at(now) == AuctionStatus.ACTIVE

    def winner_at(self, now: datetime) -> Optional[str]:
        """Winner, exposed only once the auction has ended."""
        if self.status_at(now) != AuctionStatus.ENDED:
            return None
        return self.winner

    def with_encrypted_bid(self) -> "AuctionItem":
        """Copy with the encrypted bid counter incremented by one."""
        return replace(self, encrypted_bids_count=self.encrypted_bids_count + 1)


@dataclass(frozen=True)
class EncryptedBid:
    """Receipt of an acknowledged encrypted bid."""
    id: str
    auction_id: str
    bidder: str
    commitment: str
    attestation: str
    timestamp: datetime
    status: BidStatus = BidStatus.PENDING


@dataclass(frozen=True)
class BidHistoryItem:
    """Listing view of a bid; carries no commitment material."""
    id: str
    auction_id: str
    bidder: str
    timestamp: datetime
    status: BidStatus

    @classmethod
    def from_bid(cls, bid: EncryptedBid) -> "BidHistoryItem":
        return cls(
            id=bid.id,
            auction_id=bid.auction_id,
            bidder=bid.bidder,
            timestamp=bid.timestamp,
            status=bid.status,
        )
