"""
Bid Commitments - opaque, non-deterministic encodings of a bid amount.

A commitment seals the amount together with fresh random salt and the
creation timestamp:

    blob = version || timestamp_ms || nonce || AES-GCM(salt || amount) || tag
    commitment = base64url(blob)

The version byte and timestamp are authenticated as associated data, so
any edit to the blob is detected when the key holder opens it. Without
the committer's key the amount cannot be recovered; with the same amount
and key two calls still differ (fresh nonce, salt and timestamp).

This stands in for an FHE ciphertext. A real backend plugs in through
the Committer protocol without changing the bid session.
"""

import asyncio
import secrets
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Optional, Protocol

from Crypto.Cipher import AES

from cipherbid.core.errors import CommitmentError, ValidationError
from cipherbid.crypto import b64url_decode, b64url_encode
from cipherbid.utils.logger import get_logger
from cipherbid.utils.validation import (
    CONSTRAINT_BELOW_FLOOR,
    CONSTRAINT_NON_NUMERIC,
    CONSTRAINT_NON_POSITIVE,
    to_decimal,
    validate_floor,
    validate_numeric,
    validate_positive,
)

logger = get_logger("crypto.commitment")


# =============================================================================
# Constants
# =============================================================================

COMMITMENT_VERSION = 1
KEY_SIZE = 32
NONCE_SIZE = 12
SALT_SIZE = 16
TAG_SIZE = 16
TIMESTAMP_SIZE = 8
HEADER_SIZE = 1 + TIMESTAMP_SIZE

MIN_BLOB_SIZE = HEADER_SIZE + NONCE_SIZE + SALT_SIZE + 1 + TAG_SIZE


# =============================================================================
# Amount Validation
# =============================================================================


def validate_bid_amount(value: Any, floor: Optional[Decimal] = None) -> Decimal:
    """
    Check a raw bid amount and return it as Decimal.

    Args:
        value: User-supplied amount (int, float, Decimal or numeric str)
        floor: Auction starting bid, if the floor applies

    Returns:
        The amount as Decimal

    Raises:
        ValidationError: constraint is 'non_numeric', 'non_positive' or
            'below_floor'
    """
    valid, err = validate_numeric(value)
    if not valid:
        raise ValidationError(err, constraint=CONSTRAINT_NON_NUMERIC)

    amount = to_decimal(value)

    valid, err = validate_positive(amount)
    if not valid:
        raise ValidationError(err, constraint=CONSTRAINT_NON_POSITIVE)

    if floor is not None:
        valid, err = validate_floor(amount, floor)
        if not valid:
            raise ValidationError(err, constraint=CONSTRAINT_BELOW_FLOOR)

    return amount


# =============================================================================
# Committer Interface
# =============================================================================


class Committer(Protocol):
    """Capability that turns a validated amount into a commitment string."""

    async def commit(self, amount: Decimal) -> str:
        ...


@dataclass(frozen=True)
class CommitmentHeader:
    """Public part of a commitment, readable without the key."""
    version: int
    created_at: datetime


def inspect_commitment(commitment: str) -> CommitmentHeader:
    """
    Read the unencrypted header of a commitment.

    Raises:
        CommitmentError: if the string is not a well-formed commitment
    """
    try:
        blob = b64url_decode(commitment)
    except ValueError as e:
        raise CommitmentError(f"Commitment is not valid base64url: {e}") from e

    if len(blob) < MIN_BLOB_SIZE:
        raise CommitmentError("Commitment is truncated")

    version = blob[0]
    if version != COMMITMENT_VERSION:
        raise CommitmentError(f"Unsupported commitment version {version}")

    timestamp_ms = int.from_bytes(blob[1:HEADER_SIZE], "big")
    created_at = datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc)
    return CommitmentHeader(version=version, created_at=created_at)


# =============================================================================
# Simulated Committer
# =============================================================================


class SimulatedCommitter:
    """
    AES-GCM committer standing in for client-side FHE encryption.

    Holds the sealing key; only the holder can open() a commitment.
    """

    def __init__(self, key: Optional[bytes] = None, delay_ms: int = 0):
        """
        Args:
            key: 32-byte sealing key. A random key is drawn when omitted.
            delay_ms: Simulated backend latency per commit
        """
        if key is None:
            key = secrets.token_bytes(KEY_SIZE)
        if len(key) != KEY_SIZE:
            raise ValueError(f"Commitment key must be {KEY_SIZE} bytes")
        self._key = key
        self.delay_ms = delay_ms
        self.commitments_created = 0

    async def commit(self, amount: Decimal) -> str:
        """
        Seal an amount into a fresh commitment.

        Args:
            amount: Positive finite amount (floor checks belong to the caller)

        Returns:
            Opaque base64url commitment

        Raises:
            ValidationError: if amount is non-numeric or non-positive
        """
        amount = validate_bid_amount(amount)

        if self.delay_ms:
            await asyncio.sleep(self.delay_ms / 1000)

        timestamp_ms = int(time.time() * 1000)
        header = bytes([COMMITMENT_VERSION]) + timestamp_ms.to_bytes(TIMESTAMP_SIZE, "big")
        nonce = secrets.token_bytes(NONCE_SIZE)
        salt = secrets.token_bytes(SALT_SIZE)

        cipher = AES.new(self._key, AES.MODE_GCM, nonce=nonce, mac_len=TAG_SIZE)
        cipher.update(header)
        ciphertext, tag = cipher.encrypt_and_digest(salt + str(amount).encode("ascii"))

        self.commitments_created += 1
        logger.debug(f"Sealed commitment #{self.commitments_created} at {timestamp_ms}")
        return b64url_encode(header + nonce + ciphertext + tag)

    def open(self, commitment: str) -> Decimal:
        """
        Recover the amount from a commitment made with this key.

        Raises:
            CommitmentError: malformed, tampered, or sealed under another key
        """
        inspect_commitment(commitment)
        blob = b64url_decode(commitment)

        header = blob[:HEADER_SIZE]
        nonce = blob[HEADER_SIZE:HEADER_SIZE + NONCE_SIZE]
        ciphertext = blob[HEADER_SIZE + NONCE_SIZE:-TAG_SIZE]
        tag = blob[-TAG_SIZE:]

        cipher = AES.new(self._key, AES.MODE_GCM, nonce=nonce, mac_len=TAG_SIZE)
        cipher.update(header)
        try:
            plaintext = cipher.decrypt_and_verify(ciphertext, tag)
        except ValueError as e:
            raise CommitmentError("Commitment failed authentication") from e

        amount = to_decimal(plaintext[SALT_SIZE:].decode("ascii", errors="replace"))
        if amount is None:
            raise CommitmentError("Commitment payload is not an amount")
        return amount


__all__ = [
    "Committer",
    "CommitmentHeader",
    "SimulatedCommitter",
    "inspect_commitment",
    "validate_bid_amount",
    "COMMITMENT_VERSION",
]
