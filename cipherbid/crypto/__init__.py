"""
Cryptographic primitives for cipherbid.

This module provides:
- Keccak-256 hashing
- Key generation for bidder identities
- Digital signatures (ECDSA on secp256k1)
- URL-safe base64 helpers for opaque artifacts

Design Notes:
-------------
Keccak-256 produces attestation binding tokens and commitment
fingerprints, matching the hashing convention of the EVM chains the
auction house settles on. secp256k1 keys let an attestor sign its
binding token when a wallet key is available.

The bid commitment itself lives in cipherbid.crypto.commitment and the
attestation in cipherbid.crypto.attestation.
"""

import base64
import binascii
import secrets
from dataclasses import dataclass

from Crypto.Hash import keccak
from py_ecc.secp256k1 import secp256k1


# =============================================================================
# Constants
# =============================================================================

# secp256k1 curve order (number of points on the curve)
SECP256K1_ORDER = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141


# =============================================================================
# Hashing
# =============================================================================


def keccak256(data: bytes) -> bytes:
    """
    Compute Keccak-256 hash (Ethereum-style).

    Used for: attestation binding tokens, commitment fingerprints,
    address derivation.
    """
    k = keccak.new(digest_bits=256)
    k.update(data)
    return k.digest()


# =============================================================================
# Key Generation
# =============================================================================


@dataclass
class KeyPair:
    """
    An ECDSA keypair on secp256k1.

    Attributes:
        private_key: 32-byte secret key (integer in [1, order-1])
        public_key: 64-byte uncompressed public key (x || y coordinates)
    """
    private_key: bytes  # 32 bytes
    public_key: bytes   # 64 bytes (uncompressed, no 0x04 prefix)

    @property
    def address(self) -> str:
        """
        Derive address from public key (Ethereum-style).

        Address = last 20 bytes of keccak256(public_key), hex-encoded with 0x prefix.
        """
        return public_key_to_address(self.public_key)

    @property
    def public_key_hex(self) -> str:
        """Return public key as hex string."""
        return self.public_key.hex()


def generate_keypair() -> KeyPair:
    """Generate a new random keypair from the OS CSPRNG."""
    private_key_int = secrets.randbelow(SECP256K1_ORDER - 1) + 1
    private_key = private_key_int.to_bytes(32, byteorder="big")
    return KeyPair(private_key=private_key, public_key=private_key_to_public_key(private_key))


def private_key_to_public_key(private_key: bytes) -> bytes:
    """
    Derive public key from private key.

    Args:
        private_key: 32-byte private key

    Returns:
        64-byte uncompressed public key
    """
    if len(private_key) != 32:
        raise ValueError("Private key must be 32 bytes")

    public_key_point = secp256k1.privtopub(private_key)
    x_bytes = public_key_point[0].to_bytes(32, byteorder="big")
    y_bytes = public_key_point[1].to_bytes(32, byteorder="big")
    return x_bytes + y_bytes


def public_key_to_address(public_key: bytes) -> str:
    """0x-prefixed address of a 64-byte public key."""
    return "0x" + keccak256(public_key)[-20:].hex()


# =============================================================================
# Digital Signatures (ECDSA)
# =============================================================================


def sign(message_hash: bytes, private_key: bytes) -> bytes:
    """
    Sign a message hash using ECDSA on secp256k1.

    Args:
        message_hash: 32-byte hash of the message to sign
        private_key: 32-byte private key

    Returns:
        64-byte signature (r || s, each 32 bytes)
    """
    if len(message_hash) != 32:
        raise ValueError("Message hash must be 32 bytes")
    if len(private_key) != 32:
        raise ValueError("Private key must be 32 bytes")

    v, r, s = secp256k1.ecdsa_raw_sign(message_hash, private_key)

    # Normalize s to lower half of curve order (EIP-2)
    if s > SECP256K1_ORDER // 2:
        s = SECP256K1_ORDER - s

    return r.to_bytes(32, byteorder="big") + s.to_bytes(32, byteorder="big")


def verify(message_hash: bytes, signature: bytes, public_key: bytes) -> bool:
    """
    Verify an ECDSA signature.

    Args:
        message_hash: 32-byte hash of the signed message
        signature: 64-byte signature (r || s)
        public_key: 64-byte public key (x || y)

    Returns:
        True if signature is valid, False otherwise
    """
    if len(message_hash) != 32 or len(signature) != 64 or len(public_key) != 64:
        return False

    r = int.from_bytes(signature[:32], byteorder="big")
    s = int.from_bytes(signature[32:], byteorder="big")
    if r < 1 or r >= SECP256K1_ORDER:
        return False
    if s < 1 or s >= SECP256K1_ORDER:
        return False

    public_key_point = (
        int.from_bytes(public_key[:32], byteorder="big"),
        int.from_bytes(public_key[32:], byteorder="big"),
    )

    # Recover with both parities (Ethereum v convention) and compare
    for v in (27, 28):
        try:
            recovered = secp256k1.ecdsa_raw_recover(message_hash, (v, r, s))
        except (ValueError, ZeroDivisionError, TypeError):
            continue
        if recovered == public_key_point:
            return True

    return False


# =============================================================================
# Encoding Helpers
# =============================================================================


def hex_to_bytes(hex_str: str) -> bytes:
    """Convert hex string (with or without 0x prefix) to bytes."""
    if hex_str.startswith("0x") or hex_str.startswith("0X"):
        hex_str = hex_str[2:]
    return bytes.fromhex(hex_str)


def b64url_encode(data: bytes) -> str:
    """URL-safe base64 without padding."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def b64url_decode(text: str) -> bytes:
    """
    Inverse of b64url_encode.

    Raises ValueError on characters outside the URL-safe alphabet.
    """
    if not isinstance(text, str):
        raise ValueError("expected str")
    padded = text + "=" * (-len(text) % 4)
    try:
        return base64.b64decode(padded.encode("ascii"), altchars=b"-_", validate=True)
    except (UnicodeEncodeError, binascii.Error) as e:
        raise ValueError(f"invalid base64url: {e}") from e


__all__ = [
    "SECP256K1_ORDER",
    "keccak256",
    "KeyPair",
    "generate_keypair",
    "private_key_to_public_key",
    "public_key_to_address",
    "sign",
    "verify",
    "hex_to_bytes",
    "b64url_encode",
    "b64url_decode",
]
