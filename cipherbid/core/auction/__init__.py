"""
cipherbid Auction Module.

This module provides the auction side of the house:
- Auction entities with time-derived status
- Countdown projection and periodic ticker
- Catalogue ownership and filtering
- Seed catalogue
"""

from cipherbid.core.auction.models import (
    AuctionItem,
    AuctionStatus,
    BidStatus,
    EncryptedBid,
    BidHistoryItem,
    derive_status,
)

from cipherbid.core.auction.clock import (
    ClockProjection,
    CountdownTicker,
    ENDED_LABEL,
    format_remaining,
    project,
    utcnow,
)

from cipherbid.core.auction.catalogue import (
    AuctionCatalogue,
    filter_auctions,
    STATUS_ALL,
    STATUS_FILTERS,
)

from cipherbid.core.auction.seed import seed_auctions

__all__ = [
    # Models
    "AuctionItem",
    "AuctionStatus",
    "BidStatus",
    "EncryptedBid",
    "BidHistoryItem",
    "derive_status",
    # Clock
    "ClockProjection",
    "CountdownTicker",
    "ENDED_LABEL",
    "format_remaining",
    "project",
    "utcnow",
    # Catalogue
    "AuctionCatalogue",
    "filter_auctions",
    "STATUS_ALL",
    "STATUS_FILTERS",
    "seed_auctions",
]
