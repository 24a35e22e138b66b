"""
Bid Attestations - bind a commitment to a bidder identity and a time.

An attestation is base64url(JSON) with the fields:

    v          format version
    timestamp  creation time (ms since epoch)
    identity   submitter public identity (wallet address)
    nonce      random hex, keeps attestations distinct
    binding    keccak256(commitment || identity || timestamp || nonce)
    signature  optional ECDSA signature over binding (hex)
    public_key optional signer public key (hex)

The amount never appears; only the commitment feeds the binding token.

NOTE: verify_attestation() is a structural check. It confirms the
fields are present, the binding token recomputes from the commitment,
and the optional signature is valid for the embedded key, whose address
must equal identity. It does NOT prove anything about the committed
amount. A real zero-knowledge proof system replaces this module
through the Attestor protocol.
"""

import asyncio
import json
import secrets
import time
from dataclasses import dataclass
from typing import Optional, Protocol

from cipherbid.core.errors import AttestationError
from cipherbid.crypto import (
    KeyPair,
    b64url_decode,
    b64url_encode,
    hex_to_bytes,
    keccak256,
    public_key_to_address,
    sign,
    verify,
)
from cipherbid.utils.logger import get_logger
from cipherbid.utils.validation import validate_string

logger = get_logger("crypto.attestation")

ATTESTATION_VERSION = 1
NONCE_BYTES = 8
REQUIRED_FIELDS = ("v", "timestamp", "identity", "nonce", "binding")


# =============================================================================
# Data Structures
# =============================================================================


@dataclass(frozen=True)
class AttestationClaims:
    """Parsed, amount-free view of an attestation."""
    version: int
    timestamp: int
    identity: str
    nonce: str
    binding: str
    signature: Optional[str] = None
    public_key: Optional[str] = None

    @property
    def is_signed(self) -> bool:
        return bool(self.signature and self.public_key)


class Attestor(Protocol):
    """Capability that attests a commitment on behalf of an identity."""

    async def attest(self, commitment: str, identity: str) -> str:
        ...


# =============================================================================
# Binding
# =============================================================================


def compute_binding(commitment: str, identity: str, timestamp: int, nonce: str) -> str:
    """Binding token tying the commitment to identity and time."""
    material = "|".join((commitment, identity, str(timestamp), nonce)).encode("utf-8")
    return keccak256(material).hex()


# =============================================================================
# Structural Attestor
# =============================================================================


class StructuralAttestor:
    """
    Attestor producing structurally verifiable attestations.

    When a keypair is supplied, the binding token is also signed and
    the attested identity must be the keypair address.
    """

    def __init__(self, keypair: Optional[KeyPair] = None, delay_ms: int = 0):
        self.keypair = keypair
        self.delay_ms = delay_ms
        self.attestations_created = 0

    async def attest(self, commitment: str, identity: str) -> str:
        """
        Produce an attestation for commitment on behalf of identity.

        Raises:
            AttestationError: identity missing/blank, commitment empty, or
                identity differs from the signing key address
        """
        valid, err = validate_string(identity, "identity")
        if not valid:
            raise AttestationError(f"Cannot attest without a bidder identity: {err}")
        valid, err = validate_string(commitment, "commitment", max_length=4096)
        if not valid:
            raise AttestationError(err)
        if self.keypair is not None and identity.lower() != self.keypair.address.lower():
            raise AttestationError("Identity does not match the signing key address")

        if self.delay_ms:
            await asyncio.sleep(self.delay_ms / 1000)

        timestamp = int(time.time() * 1000)
        nonce = secrets.token_hex(NONCE_BYTES)
        binding = compute_binding(commitment, identity, timestamp, nonce)

        claims = {
            "v": ATTESTATION_VERSION,
            "timestamp": timestamp,
            "identity": identity,
            "nonce": nonce,
            "binding": binding,
        }
        if self.keypair is not None:
            claims["signature"] = sign(bytes.fromhex(binding), self.keypair.private_key).hex()
            claims["public_key"] = self.keypair.public_key_hex

        self.attestations_created += 1
        logger.debug(f"Attested commitment for {identity[:10]} (binding {binding[:12]}...)")
        return b64url_encode(json.dumps(claims, separators=(",", ":"), sort_keys=True).encode("utf-8"))


# =============================================================================
# Parsing & Verification
# =============================================================================


def parse_attestation(attestation: str) -> AttestationClaims:
    """
    Decode an attestation into its claims.

    Raises:
        AttestationError: not decodable, not a JSON object, or missing
            required fields
    """
    try:
        data = json.loads(b64url_decode(attestation).decode("utf-8"))
    except (ValueError, UnicodeDecodeError) as e:
        raise AttestationError(f"Attestation is not decodable: {e}") from e

    if not isinstance(data, dict):
        raise AttestationError("Attestation payload must be an object")

    missing = [name for name in REQUIRED_FIELDS if data.get(name) in (None, "")]
    if missing:
        raise AttestationError(f"Attestation missing fields: {', '.join(missing)}")

    if data["v"] != ATTESTATION_VERSION:
        raise AttestationError(f"Unsupported attestation version {data['v']}")

    timestamp = data["timestamp"]
    if isinstance(timestamp, bool) or not isinstance(timestamp, int) or timestamp <= 0:
        raise AttestationError("Attestation timestamp must be a positive integer")

    for name in ("identity", "nonce", "binding"):
        if not isinstance(data[name], str):
            raise AttestationError(f"Attestation field {name} must be a string")

    return AttestationClaims(
        version=data["v"],
        timestamp=timestamp,
        identity=data["identity"],
        nonce=data["nonce"],
        binding=data["binding"],
        signature=data.get("signature"),
        public_key=data.get("public_key"),
    )


def verify_attestation(commitment: str, attestation: str) -> bool:
    """
    Structurally verify an attestation against its commitment.

    Returns True when the attestation parses, its binding token
    recomputes from commitment, and any embedded signature checks out
    and was made by the key behind identity.
    This is not a soundness proof of the committed amount.
    """
    try:
        claims = parse_attestation(attestation)
    except AttestationError as e:
        logger.debug(f"Attestation rejected: {e}")
        return False

    expected = compute_binding(commitment, claims.identity, claims.timestamp, claims.nonce)
    if expected != claims.binding:
        logger.debug("Attestation binding does not match commitment")
        return False

    if claims.signature is not None or claims.public_key is not None:
        if not claims.is_signed:
            return False
        try:
            signature = hex_to_bytes(claims.signature)
            public_key = hex_to_bytes(claims.public_key)
        except (TypeError, ValueError, AttributeError):
            return False
        if not verify(bytes.fromhex(claims.binding), signature, public_key):
            logger.debug("Attestation signature invalid")
            return False
        if public_key_to_address(public_key) != claims.identity.lower():
            logger.debug("Attestation signer is not the attested identity")
            return False

    return True


__all__ = [
    "Attestor",
    "AttestationClaims",
    "StructuralAttestor",
    "compute_binding",
    "parse_attestation",
    "verify_attestation",
    "ATTESTATION_VERSION",
]
