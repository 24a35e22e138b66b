"""
cipherbid Bidding Module.

Bid session orchestration and the submission collaborator.
"""

from cipherbid.core.bidding.session import (
    BidSession,
    SessionState,
    SealedBid,
    SubmissionReceipt,
)

from cipherbid.core.bidding.submission import (
    Submitter,
    SimulatedChainSubmitter,
)

__all__ = [
    "BidSession",
    "SessionState",
    "SealedBid",
    "SubmissionReceipt",
    "Submitter",
    "SimulatedChainSubmitter",
]
