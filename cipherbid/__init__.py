"""
cipherbid - sealed-bid auction house core.

Provides:
- Time-boxed auctions with derived status and countdowns
- Opaque, non-deterministic bid commitments
- Attestations binding commitments to bidder identities
- A bid session state machine driving encrypt -> submit
"""

__version__ = "0.1.0"
