"""
Display projections for bid artifacts and identities.

None of these expose the full commitment; they are what a UI shows to
confirm that a bid exists.
"""

from cipherbid.crypto import keccak256

LOCK = "\U0001F512"
ELLIPSIS = "..."
FINGERPRINT_BYTES = 8


def redact_commitment(commitment: str, edge: int = 8) -> str:
    """
    Short excerpt of a commitment with the middle elided.

    >>> redact_commitment("abcdefgh12345678ZZZZzzzz")
    '🔒 abcdefgh...ZZZZzzzz'
    """
    if edge < 1:
        raise ValueError("edge must be at least 1")
    if len(commitment) <= 2 * edge:
        # Too short to elide meaningfully; show only the head
        return f"{LOCK} {commitment[:edge]}{ELLIPSIS}"
    return f"{LOCK} {commitment[:edge]}{ELLIPSIS}{commitment[-edge:]}"


def commitment_fingerprint(commitment: str) -> str:
    """Stable short hex identifier of a commitment."""
    return keccak256(commitment.encode("utf-8"))[:FINGERPRINT_BYTES].hex()


def short_address(address: str) -> str:
    """0x1234...abcd form of a wallet address."""
    if len(address) <= 10:
        return address
    return f"{address[:6]}{ELLIPSIS}{address[-4:]}"
