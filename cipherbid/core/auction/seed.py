"""Static catalogue loaded at process start."""

from datetime import datetime, timedelta
from decimal import Decimal
from typing import List

from cipherbid.core.auction.models import AuctionItem


def seed_auctions(now: datetime) -> List[AuctionItem]:
    """Seed auctions with time bounds relative to now."""
    hour = timedelta(hours=1)
    return [
        AuctionItem(
            id="1",
            title="Cosmic Dreams NFT",
            description="A one-of-a-kind generative art piece exploring the boundaries of space and time.",
            image_url="https://images.unsplash.com/photo-1634986666676-ec8fd927c23d",
            category="Digital Art",
            starting_bid=Decimal("0.5"),
            encrypted_bids_count=12,
            start_time=now - 2 * hour,
            end_time=now + 22 * hour,
        ),
        AuctionItem(
            id="2",
            title="Vintage Rolex Submariner",
            description="1968 reference 5513 with original box and papers, fully serviced.",
            image_url="https://images.unsplash.com/photo-1523170335258-f5ed11844a49",
            category="Luxury",
            starting_bid=Decimal("15"),
            encrypted_bids_count=8,
            start_time=now - 5 * hour,
            end_time=now + 43 * hour,
        ),
        AuctionItem(
            id="3",
            title="Genesis Domain: secret.eth",
            description="Premium ENS name, registered since 2017. Perfect for privacy-focused projects.",
            image_url="https://images.unsplash.com/photo-1639762681485-074b7f938ba0",
            category="Domains",
            starting_bid=Decimal("2.5"),
            start_time=now + 6 * hour,
            end_time=now + 54 * hour,
        ),
        AuctionItem(
            id="4",
            title="Abstract Harmony #42",
            description="Hand-painted canvas by an emerging street artist, signed and certified.",
            image_url="https://images.unsplash.com/photo-1541961017774-22349e4a1262",
            category="Physical Art",
            starting_bid=Decimal("1.2"),
            encrypted_bids_count=23,
            start_time=now - 30 * hour,
            end_time=now - 6 * hour,
            winner="0x8f3a41c9d2b7e6a05c1f4e9d3b2a7c6e5f4d3c2b",
        ),
        AuctionItem(
            id="5",
            title="Private Island Weekend",
            description="Three nights for two on a secluded island, travel and chef included.",
            image_url="https://images.unsplash.com/photo-1559128010-7c1ad6e1b6a5",
            category="Experiences",
            starting_bid=Decimal("8"),
            encrypted_bids_count=5,
            start_time=now - hour,
            end_time=now + 71 * hour,
        ),
        AuctionItem(
            id="6",
            title="Founders Pass",
            description="Lifetime membership to an invite-only builders collective.",
            image_url="https://images.unsplash.com/photo-1620321023374-d1a68fbc720d",
            category="Membership",
            starting_bid=Decimal("3"),
            start_time=now + 12 * hour,
            end_time=now + 36 * hour,
        ),
    ]
