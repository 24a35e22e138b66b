"""
Error taxonomy for the bid workflow.

Every failure here is scoped to a single bid session and is recoverable
by an explicit user action; nothing is fatal to the process.
"""

from typing import Optional


class CipherBidError(Exception):
    """Base class for all cipherbid errors."""


class ValidationError(CipherBidError):
    """
    Bad user input (bid amount or auction terms).

    Attributes:
        constraint: Which rule failed, e.g. 'non_numeric', 'non_positive',
            'below_floor'
    """

    def __init__(self, message: str, constraint: Optional[str] = None):
        super().__init__(message)
        self.constraint = constraint


class CommitmentError(CipherBidError):
    """Commitment could not be produced or opened."""


class AttestationError(CipherBidError):
    """Missing identity or malformed attestation."""


class StateError(CipherBidError):
    """Operation invoked in the wrong session state (caller bug)."""


class SubmissionError(CipherBidError):
    """The submission collaborator failed or rejected the bid."""


__all__ = [
    "CipherBidError",
    "ValidationError",
    "CommitmentError",
    "AttestationError",
    "StateError",
    "SubmissionError",
]
