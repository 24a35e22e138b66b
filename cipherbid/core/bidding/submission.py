"""
Bid Submission - the external collaborator that records sealed bids.

The bid session only sees a yes/no acknowledgement from a Submitter.
SimulatedChainSubmitter stands in for the on-chain call:

1. Waits a configurable delay (block inclusion)
2. Rejects bids for auctions that are not active, when it can see the
   catalogue, and bids whose attestation does not verify structurally
3. Optionally fails at random (for exercising retry paths)
4. Keeps a ledger of accepted bids for bid history
"""

import asyncio
import secrets
from dataclasses import replace
from datetime import datetime
from typing import Callable, Dict, List, Optional, Protocol

from cipherbid.core.auction.catalogue import AuctionCatalogue
from cipherbid.core.auction.clock import utcnow
from cipherbid.core.auction.models import BidHistoryItem, BidStatus, EncryptedBid
from cipherbid.crypto import keccak256
from cipherbid.crypto.attestation import parse_attestation, verify_attestation
from cipherbid.utils.logger import get_logger

logger = get_logger("submission")


class Submitter(Protocol):
    """Capability that delivers a sealed bid and reports acceptance."""

    async def submit(self, auction_id: str, commitment: str, attestation: str) -> bool:
        ...


class SimulatedChainSubmitter:
    """
    Simulated chain backend for development and testing.

    Accepted bids start PENDING and become CONFIRMED via confirm().
    """

    def __init__(
        self,
        delay_ms: int = 2000,
        failure_rate: float = 0.0,
        clock: Optional[Callable[[], datetime]] = None,
        catalogue: Optional[AuctionCatalogue] = None,
    ):
        """
        Args:
            delay_ms: Simulated inclusion time in milliseconds
            failure_rate: Probability of a rejected submission (0.0-1.0)
            clock: Time source for receipts and auction status
            catalogue: Auctions to check bids against; unchecked if None
        """
        if not 0.0 <= failure_rate <= 1.0:
            raise ValueError("failure_rate must be within [0, 1]")
        self.delay_ms = delay_ms
        self.failure_rate = failure_rate
        self.clock = clock or utcnow
        self.catalogue = catalogue
        self.calls = 0
        self._bids: Dict[str, List[EncryptedBid]] = {}

    async def submit(self, auction_id: str, commitment: str, attestation: str) -> bool:
        """
        Deliver a sealed bid.

        Returns:
            True when the bid is recorded, False when rejected
        """
        self.calls += 1

        if self.delay_ms:
            await asyncio.sleep(self.delay_ms / 1000)

        if self.catalogue is not None:
            auction = self.catalogue.get(auction_id)
            if auction is None or not auction.is_accepting_bids(self.clock()):
                logger.warning(f"Rejected bid for auction {auction_id}: auction is not accepting bids")
                return False

        if not verify_attestation(commitment, attestation):
            logger.warning(f"Rejected bid for auction {auction_id}: attestation does not verify")
            return False

        if self.failure_rate and secrets.randbelow(10_000) < int(self.failure_rate * 10_000):
            logger.warning(f"Rejected bid for auction {auction_id}: simulated chain failure")
            return False

        claims = parse_attestation(attestation)
        bid = EncryptedBid(
            id=keccak256(f"{auction_id}|{claims.binding}".encode("utf-8"))[:16].hex(),
            auction_id=auction_id,
            bidder=claims.identity,
            commitment=commitment,
            attestation=attestation,
            timestamp=self.clock(),
        )
        self._bids.setdefault(auction_id, []).append(bid)

        logger.info(f"Recorded encrypted bid {bid.id} for auction {auction_id}")
        return True

    def bids(self, auction_id: str) -> List[EncryptedBid]:
        """Full receipts for an auction, oldest first."""
        return list(self._bids.get(auction_id, []))

    def history(self, auction_id: str, bidder: Optional[str] = None) -> List[BidHistoryItem]:
        """Redacted bid history, optionally for one bidder."""
        return [
            BidHistoryItem.from_bid(bid)
            for bid in self._bids.get(auction_id, [])
            if bidder is None or bid.bidder == bidder
        ]

    def confirm(self, auction_id: str) -> int:
        """
        Mark all pending bids of an auction as confirmed.

        Returns:
            Number of bids confirmed
        """
        confirmed = 0
        bids = self._bids.get(auction_id, [])
        for i, bid in enumerate(bids):
            if bid.status == BidStatus.PENDING:
                bids[i] = replace(bid, status=BidStatus.CONFIRMED)
                confirmed += 1
        return confirmed
