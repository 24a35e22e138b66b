"""
Bid Session - orchestrates one sealed-bid attempt.

State machine:

    IDLE --encrypt--> ENCRYPTING --ok--> ENCRYPTED --submit--> SUBMITTING
      ^                   |                  ^                     |
      +------failure------+                  +-------failure-------+
                                                                   |
                                              SUBMITTED <---ack----+
                                                  |
    any state --close--> CLOSED <-----------------+

Every await is a suspension point on the event loop. A generation
counter is captured before each await; close() bumps it, so results
that arrive after close are dropped and never reach the catalogue.

Double-invoking encrypt() while ENCRYPTING or submit() while
SUBMITTING is a no-op, not a second backend call.
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Optional

from cipherbid.core.auction.catalogue import AuctionCatalogue
from cipherbid.core.auction.clock import utcnow
from cipherbid.core.auction.models import AuctionItem
from cipherbid.core.bidding.submission import Submitter
from cipherbid.core.display import commitment_fingerprint, redact_commitment
from cipherbid.core.errors import (
    CipherBidError,
    CommitmentError,
    StateError,
    SubmissionError,
    ValidationError,
)
from cipherbid.crypto.attestation import Attestor
from cipherbid.crypto.commitment import Committer, validate_bid_amount
from cipherbid.utils.logger import get_logger

logger = get_logger("session")


class SessionState(str, Enum):
    """State of a bid session."""
    IDLE = "idle"
    ENCRYPTING = "encrypting"
    ENCRYPTED = "encrypted"
    SUBMITTING = "submitting"
    SUBMITTED = "submitted"
    FAILED = "failed"   # display-only: IDLE after a failed encrypt
    CLOSED = "closed"


@dataclass(frozen=True)
class SealedBid:
    """Commitment and attestation produced by a successful encrypt."""
    commitment: str
    attestation: str

    def redacted(self, edge: int = 8) -> str:
        return redact_commitment(self.commitment, edge)


@dataclass(frozen=True)
class SubmissionReceipt:
    """What the bidder is shown once the chain acknowledged the bid."""
    auction_id: str
    fingerprint: str
    redacted_commitment: str
    encrypted_bids_count: int
    submitted_at: datetime


class BidSession:
    """
    Client-held state for one bid attempt on one auction.

    Owned by AuctionHouse; destroyed by close() or by a successful
    submit().
    """

    def __init__(
        self,
        auction_id: str,
        catalogue: AuctionCatalogue,
        identity: str,
        committer: Committer,
        attestor: Attestor,
        submitter: Submitter,
        clock: Optional[Callable[[], datetime]] = None,
        redaction_edge: int = 8,
    ):
        catalogue.require(auction_id)
        self.auction_id = auction_id
        self.catalogue = catalogue
        self.identity = identity
        self.committer = committer
        self.attestor = attestor
        self.submitter = submitter
        self.clock = clock or utcnow
        self.redaction_edge = redaction_edge

        self.state = SessionState.IDLE
        self.last_error: Optional[str] = None
        self.sealed: Optional[SealedBid] = None
        self._amount_input: Any = None
        self._amount: Optional[Decimal] = None
        self._generation = 0

    # =========================================================================
    # Queries
    # =========================================================================

    @property
    def auction(self) -> AuctionItem:
        """Current catalogue snapshot of the auction."""
        return self.catalogue.require(self.auction_id)

    @property
    def closed(self) -> bool:
        return self.state == SessionState.CLOSED

    @property
    def display_state(self) -> SessionState:
        """State as shown to the user; a failed encrypt reads FAILED."""
        if self.state == SessionState.IDLE and self.last_error:
            return SessionState.FAILED
        return self.state

    @property
    def amount_locked(self) -> bool:
        """Whether the amount field must be disabled."""
        return self.state != SessionState.IDLE

    @property
    def amount(self) -> Optional[Decimal]:
        """The validated amount once sealed, else None."""
        return self._amount

    @property
    def redacted_commitment(self) -> Optional[str]:
        if self.sealed is None:
            return None
        return self.sealed.redacted(self.redaction_edge)

    # =========================================================================
    # Actions
    # =========================================================================

    def set_amount(self, value: Any) -> None:
        """
        Record the raw amount input.

        Raises:
            StateError: once encryption started, the amount is immutable
        """
        self._require_open()
        if self.amount_locked:
            raise StateError(f"Amount cannot change in state {self.state.value}")
        self._amount_input = value

    async def encrypt(self, amount: Any = None) -> Optional[SealedBid]:
        """
        Seal the amount into a commitment and attest it.

        Args:
            amount: Optional raw amount; replaces any earlier set_amount()

        Returns:
            The sealed bid, or None when the call was a no-op or its
            result arrived after close()

        Raises:
            ValidationError: bad amount or auction not accepting bids
                (session stays IDLE)
            CommitmentError, AttestationError: backend failure
                (session returns to IDLE, retry allowed)
            StateError: session already sealed or closed
        """
        self._require_open()
        if self.state == SessionState.ENCRYPTING:
            logger.debug(f"Session {self.auction_id}: encrypt ignored, already encrypting")
            return None
        if self.state != SessionState.IDLE:
            raise StateError(f"Cannot encrypt in state {self.state.value}")

        if amount is not None:
            self.set_amount(amount)

        self.last_error = None
        try:
            auction = self._require_accepting()
            value = validate_bid_amount(self._amount_input, auction.starting_bid)
        except ValidationError as e:
            self.last_error = str(e)
            raise

        generation = self._generation
        self._transition(SessionState.ENCRYPTING)
        try:
            commitment = await self.committer.commit(value)
            attestation = await self.attestor.attest(commitment, self.identity)
        except asyncio.CancelledError:
            if not self._is_stale(generation):
                self._transition(SessionState.IDLE)
            raise
        except Exception as e:
            if self._is_stale(generation):
                logger.debug(f"Session {self.auction_id}: dropped late encrypt failure ({e})")
                return None
            error = e if isinstance(e, CipherBidError) else CommitmentError("Failed to encrypt bid. Please try again.")
            self.last_error = str(error)
            self._transition(SessionState.IDLE)
            logger.warning(f"Session {self.auction_id}: encrypt failed: {e}")
            if error is e:
                raise
            raise error from e

        if self._is_stale(generation):
            logger.debug(f"Session {self.auction_id}: dropped late encrypt result")
            return None

        self.sealed = SealedBid(commitment=commitment, attestation=attestation)
        self._amount = value
        self._transition(SessionState.ENCRYPTED)
        return self.sealed

    async def submit(self) -> Optional[SubmissionReceipt]:
        """
        Deliver the sealed bid to the submission collaborator.

        On acknowledgement the auction's encrypted bid counter is
        incremented once and the session closes.

        Returns:
            Receipt, or None when the call was a no-op or its result
            arrived after close()

        Raises:
            StateError: nothing sealed yet (IDLE/ENCRYPTING) or closed
            ValidationError: auction no longer accepting bids; the sealed
                bid is kept but will not be counted
            SubmissionError: collaborator failed or rejected the bid;
                the sealed bid is kept for a retry
        """
        self._require_open()
        if self.state == SessionState.SUBMITTING:
            logger.debug(f"Session {self.auction_id}: submit ignored, already submitting")
            return None
        if self.state != SessionState.ENCRYPTED:
            raise StateError(f"Cannot submit in state {self.state.value}; encrypt the bid first")

        sealed = self.sealed
        if sealed is None or not sealed.commitment or not sealed.attestation:
            raise StateError("Sealed bid is incomplete; encrypt the bid first")

        self.last_error = None
        try:
            self._require_accepting()
        except ValidationError as e:
            self.last_error = str(e)
            raise

        generation = self._generation
        self._transition(SessionState.SUBMITTING)
        try:
            accepted = await self.submitter.submit(self.auction_id, sealed.commitment, sealed.attestation)
        except asyncio.CancelledError:
            if not self._is_stale(generation):
                self._transition(SessionState.ENCRYPTED)
            raise
        except Exception as e:
            if self._is_stale(generation):
                logger.debug(f"Session {self.auction_id}: dropped late submit failure ({e})")
                return None
            self._fail_submit("Failed to submit bid. Please try again.")
            raise SubmissionError(self.last_error) from e

        if self._is_stale(generation):
            logger.debug(f"Session {self.auction_id}: dropped late submit result")
            return None

        if not accepted:
            self._fail_submit("Bid was rejected. Please try again.")
            raise SubmissionError(self.last_error)

        try:
            self._require_accepting()
        except ValidationError as e:
            self._fail_submit(str(e))
            raise

        updated = self.catalogue.record_encrypted_bid(self.auction_id)
        self._transition(SessionState.SUBMITTED)
        receipt = SubmissionReceipt(
            auction_id=self.auction_id,
            fingerprint=commitment_fingerprint(sealed.commitment),
            redacted_commitment=sealed.redacted(self.redaction_edge),
            encrypted_bids_count=updated.encrypted_bids_count,
            submitted_at=self.clock(),
        )
        self.close()
        return receipt

    def close(self) -> None:
        """Discard all session state; in-flight results will be ignored."""
        if self.closed:
            return
        self._generation += 1
        self._amount_input = None
        self._amount = None
        self.sealed = None
        self.last_error = None
        self._transition(SessionState.CLOSED)

    # =========================================================================
    # Internals
    # =========================================================================

    def _require_open(self) -> None:
        if self.closed:
            raise StateError("Bid session is closed")

    def _require_accepting(self) -> AuctionItem:
        auction = self.auction
        now = self.clock()
        if not auction.is_accepting_bids(now):
            raise ValidationError(
                f"Auction {auction.id} is {auction.status_at(now).value}, not accepting bids",
                constraint="auction_not_active",
            )
        return auction

    def _is_stale(self, generation: int) -> bool:
        return generation != self._generation

    def _fail_submit(self, message: str) -> None:
        self.last_error = message
        self._transition(SessionState.ENCRYPTED)
        logger.warning(f"Session {self.auction_id}: {message}")

    def _transition(self, new_state: SessionState) -> None:
        logger.debug(f"Session {self.auction_id}: {self.state.value} -> {new_state.value}")
        self.state = new_state
