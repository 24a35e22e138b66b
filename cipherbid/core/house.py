"""
Auction House - the explicit context object shared by the UI layer.

Owns the catalogue, the bidder identity, the crypto/submission
capabilities and the currently selected auction. Child views get
read-only snapshots; the only write path into the catalogue is a
BidSession opened here.
"""

from datetime import datetime
from typing import Callable, List, Optional

from cipherbid.core.auction.catalogue import STATUS_ALL, AuctionCatalogue, StatusFilter
from cipherbid.core.auction.clock import CountdownTicker, TickCallback, utcnow
from cipherbid.core.auction.models import AuctionItem
from cipherbid.core.auction.seed import seed_auctions
from cipherbid.core.bidding.session import BidSession
from cipherbid.core.bidding.submission import SimulatedChainSubmitter, Submitter
from cipherbid.core.config import HouseConfig
from cipherbid.core.errors import AttestationError, StateError
from cipherbid.crypto.attestation import Attestor, StructuralAttestor
from cipherbid.crypto.commitment import Committer, SimulatedCommitter
from cipherbid.utils.logger import get_logger

logger = get_logger("house")


class AuctionHouse:
    """
    Catalogue controller and bid session owner.

    At most one bid session is live at a time; selecting another
    auction closes the previous session.
    """

    def __init__(
        self,
        catalogue: AuctionCatalogue,
        committer: Committer,
        attestor: Attestor,
        submitter: Submitter,
        user_address: str = "",
        clock: Optional[Callable[[], datetime]] = None,
        config: Optional[HouseConfig] = None,
    ):
        self.catalogue = catalogue
        self.committer = committer
        self.attestor = attestor
        self.submitter = submitter
        self.user_address = user_address
        self.clock = clock or utcnow
        self.config = config or HouseConfig()
        self._session: Optional[BidSession] = None

    @classmethod
    def from_config(
        cls,
        config: HouseConfig,
        user_address: str = "",
        clock: Optional[Callable[[], datetime]] = None,
    ) -> "AuctionHouse":
        """Seeded auction house wired to the simulated backends."""
        clock = clock or utcnow
        catalogue = AuctionCatalogue(seed_auctions(clock()))
        return cls(
            catalogue=catalogue,
            committer=SimulatedCommitter(key=config.commitment_key_bytes, delay_ms=config.commit_delay_ms),
            attestor=StructuralAttestor(),
            submitter=SimulatedChainSubmitter(
                delay_ms=config.submission_delay_ms,
                failure_rate=config.submission_failure_rate,
                clock=clock,
                catalogue=catalogue,
            ),
            user_address=user_address,
            clock=clock,
            config=config,
        )

    # =========================================================================
    # Identity
    # =========================================================================

    @property
    def authenticated(self) -> bool:
        return bool(self.user_address and self.user_address.strip())

    def login(self, user_address: str) -> None:
        """Adopt the identity supplied by the wallet provider."""
        self.user_address = user_address
        logger.info(f"Bidder {user_address[:10]} connected")

    def logout(self) -> None:
        self.deselect()
        self.user_address = ""

    # =========================================================================
    # Catalogue Views
    # =========================================================================

    def auctions(self, search_text: str = "", status_filter: Optional[StatusFilter] = STATUS_ALL) -> List[AuctionItem]:
        """Visible auctions for the current search and status filter."""
        return self.catalogue.visible(search_text, status_filter, self.clock())

    def countdown(self, auction_id: str, callback: TickCallback) -> CountdownTicker:
        """Ticker for an auction card; caller starts and stops it."""
        return CountdownTicker(
            self.catalogue.require(auction_id),
            callback,
            interval=self.config.tick_interval,
            clock=self.clock,
        )

    # =========================================================================
    # Selection & Sessions
    # =========================================================================

    @property
    def selected(self) -> Optional[AuctionItem]:
        """Auction whose bid dialog is open, if any."""
        if self._session is None or self._session.closed:
            return None
        return self._session.auction

    @property
    def session(self) -> Optional[BidSession]:
        if self._session is None or self._session.closed:
            return None
        return self._session

    def select(self, auction_id: str) -> BidSession:
        """
        Open the bid dialog for an auction.

        Raises:
            AttestationError: no connected identity
            StateError: auction is not accepting bids
            KeyError: unknown auction
        """
        if not self.authenticated:
            raise AttestationError("Connect a wallet before bidding")

        auction = self.catalogue.require(auction_id)
        now = self.clock()
        if not auction.is_accepting_bids(now):
            raise StateError(f"Auction {auction_id} is {auction.status_at(now).value}")

        self.deselect()
        self._session = BidSession(
            auction_id=auction_id,
            catalogue=self.catalogue,
            identity=self.user_address,
            committer=self.committer,
            attestor=self.attestor,
            submitter=self.submitter,
            clock=self.clock,
            redaction_edge=self.config.redaction_edge,
        )
        logger.debug(f"Opened bid session for auction {auction_id}")
        return self._session

    def deselect(self) -> None:
        """Close the bid dialog, discarding its session."""
        if self._session is not None:
            self._session.close()
            self._session = None
