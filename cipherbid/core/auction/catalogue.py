"""
Auction Catalogue - ownership of the auction set and the query layer.

filter_auctions() is a pure, stable filter. AuctionCatalogue owns the
collection; its single mutator is record_encrypted_bid(), called by the
bid session after the chain acknowledges a submission.
"""

from datetime import datetime
from typing import Dict, Iterable, Iterator, List, Optional, Union

from cipherbid.core.auction.clock import utcnow
from cipherbid.core.auction.models import AuctionItem, AuctionStatus
from cipherbid.core.errors import ValidationError
from cipherbid.utils.logger import get_logger

logger = get_logger("catalogue")

STATUS_ALL = "all"
STATUS_FILTERS = (STATUS_ALL,) + tuple(s.value for s in AuctionStatus)

StatusFilter = Union[str, AuctionStatus]


def _normalize_status_filter(status_filter: Optional[StatusFilter]) -> Optional[AuctionStatus]:
    """None means no status restriction."""
    if status_filter is None:
        return None
    if isinstance(status_filter, AuctionStatus):
        return status_filter
    value = str(status_filter).strip().lower()
    if value in ("", STATUS_ALL):
        return None
    try:
        return AuctionStatus(value)
    except ValueError:
        raise ValidationError(
            f"Unknown status filter {status_filter!r}, expected one of {', '.join(STATUS_FILTERS)}",
            constraint="status_filter",
        ) from None


def filter_auctions(
    auctions: Iterable[AuctionItem],
    search_text: str,
    status_filter: Optional[StatusFilter],
    now: datetime,
) -> List[AuctionItem]:
    """
    Select auctions matching both search text and status.

    Args:
        auctions: Auctions in display order
        search_text: Case-insensitive substring of title or description;
            empty matches everything
        status_filter: 'all' / None, or an exact status to keep
        now: Reference instant for status derivation

    Returns:
        Matching auctions in their original relative order
    """
    wanted = _normalize_status_filter(status_filter)
    needle = (search_text or "").lower()

    result = []
    for auction in auctions:
        if needle and needle not in auction.title.lower() and needle not in auction.description.lower():
            continue
        if wanted is not None and auction.status_at(now) != wanted:
            continue
        result.append(auction)
    return result


class AuctionCatalogue:
    """
    Owner of the auction collection.

    Callers get immutable AuctionItem snapshots; nothing outside this
    class replaces an entry.
    """

    def __init__(self, auctions: Iterable[AuctionItem] = ()):
        self._auctions: Dict[str, AuctionItem] = {}
        for auction in auctions:
            if auction.id in self._auctions:
                raise ValidationError(f"Duplicate auction id {auction.id}")
            self._auctions[auction.id] = auction

    def __len__(self) -> int:
        return len(self._auctions)

    def __iter__(self) -> Iterator[AuctionItem]:
        return iter(list(self._auctions.values()))

    def __contains__(self, auction_id: str) -> bool:
        return auction_id in self._auctions

    def get(self, auction_id: str) -> Optional[AuctionItem]:
        return self._auctions.get(auction_id)

    def require(self, auction_id: str) -> AuctionItem:
        """Lookup that fails loudly for unknown ids."""
        auction = self._auctions.get(auction_id)
        if auction is None:
            raise KeyError(f"Unknown auction {auction_id}")
        return auction

    def visible(
        self,
        search_text: str = "",
        status_filter: Optional[StatusFilter] = STATUS_ALL,
        now: Optional[datetime] = None,
    ) -> List[AuctionItem]:
        """Auctions shown for the current search and status filter."""
        if now is None:
            now = utcnow()
        return filter_auctions(self._auctions.values(), search_text, status_filter, now)

    def record_encrypted_bid(self, auction_id: str) -> AuctionItem:
        """
        Count one acknowledged encrypted bid against an auction.

        Returns:
            The updated auction snapshot
        """
        updated = self.require(auction_id).with_encrypted_bid()
        self._auctions[auction_id] = updated
        logger.info(f"Auction {auction_id} now has {updated.encrypted_bids_count} encrypted bids")
        return updated
