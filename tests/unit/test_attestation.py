"""
Tests for bid attestations.

Tests cover:
1. Attestation generation and identity requirement
2. Parsing without access to the amount
3. Structural verification (well-formed, corrupted, truncated)
4. Signed attestations
"""

import json
from decimal import Decimal

import pytest

from cipherbid.core.errors import AttestationError
from cipherbid.crypto import b64url_decode, b64url_encode, generate_keypair, sign
from cipherbid.crypto.attestation import (
    StructuralAttestor,
    compute_binding,
    parse_attestation,
    verify_attestation,
)
from cipherbid.crypto.commitment import SimulatedCommitter


# =============================================================================
# Fixtures
# =============================================================================

BIDDER = "0x8f3a41c9d2b7e6a05c1f4e9d3b2a7c6e5f4d3c2b"


@pytest.fixture
def attestor():
    return StructuralAttestor()


@pytest.fixture
def commitment():
    return "AQAAAZPqY3hQ" + "x" * 60


def reencode(attestation, **changes):
    """Decode, modify fields, re-encode."""
    data = json.loads(b64url_decode(attestation))
    data.update(changes)
    return b64url_encode(json.dumps(data).encode())


# =============================================================================
# Generation Tests
# =============================================================================


class TestAttest:
    """Tests for attestation generation."""

    @pytest.mark.asyncio
    async def test_claims_are_recoverable(self, attestor, commitment):
        attestation = await attestor.attest(commitment, BIDDER)
        claims = parse_attestation(attestation)

        assert claims.identity == BIDDER
        assert claims.timestamp > 0
        assert claims.binding == compute_binding(commitment, BIDDER, claims.timestamp, claims.nonce)
        assert not claims.is_signed

    @pytest.mark.asyncio
    async def test_amount_never_included(self, attestor):
        committer = SimulatedCommitter()
        commitment = await committer.commit(Decimal("987.65"))
        attestation = await attestor.attest(commitment, BIDDER)
        assert "987.65" not in b64url_decode(attestation).decode()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("identity", ["", "   ", None])
    async def test_missing_identity_fails(self, attestor, commitment, identity):
        with pytest.raises(AttestationError):
            await attestor.attest(commitment, identity)
        assert attestor.attestations_created == 0

    @pytest.mark.asyncio
    async def test_empty_commitment_fails(self, attestor):
        with pytest.raises(AttestationError):
            await attestor.attest("", BIDDER)

    @pytest.mark.asyncio
    async def test_attestations_are_distinct(self, attestor, commitment):
        a1 = await attestor.attest(commitment, BIDDER)
        a2 = await attestor.attest(commitment, BIDDER)
        assert a1 != a2


# =============================================================================
# Verification Tests
# =============================================================================


class TestVerifyAttestation:
    """Structural verification."""

    @pytest.mark.asyncio
    async def test_well_formed_verifies(self, attestor, commitment):
        attestation = await attestor.attest(commitment, BIDDER)
        assert verify_attestation(commitment, attestation)

    @pytest.mark.asyncio
    async def test_truncated_fails(self, attestor, commitment):
        attestation = await attestor.attest(commitment, BIDDER)
        assert not verify_attestation(commitment, attestation[: len(attestation) // 2])

    @pytest.mark.asyncio
    async def test_corrupted_fails(self, attestor, commitment):
        attestation = await attestor.attest(commitment, BIDDER)
        corrupted = attestation[:10] + ("A" if attestation[10] != "A" else "B") + attestation[11:]
        assert not verify_attestation(commitment, corrupted)

    @pytest.mark.asyncio
    async def test_other_commitment_fails(self, attestor, commitment):
        attestation = await attestor.attest(commitment, BIDDER)
        assert not verify_attestation(commitment + "y", attestation)

    @pytest.mark.asyncio
    async def test_missing_binding_fails(self, attestor, commitment):
        attestation = reencode(await attestor.attest(commitment, BIDDER), binding="")
        assert not verify_attestation(commitment, attestation)
        with pytest.raises(AttestationError):
            parse_attestation(attestation)

    @pytest.mark.asyncio
    async def test_missing_timestamp_fails(self, attestor, commitment):
        attestation = reencode(await attestor.attest(commitment, BIDDER), timestamp=None)
        assert not verify_attestation(commitment, attestation)

    @pytest.mark.asyncio
    async def test_swapped_identity_fails(self, attestor, commitment):
        attestation = reencode(await attestor.attest(commitment, BIDDER), identity="0xdead")
        assert not verify_attestation(commitment, attestation)

    def test_garbage_fails(self, commitment):
        assert not verify_attestation(commitment, "")
        assert not verify_attestation(commitment, "!!!")
        assert not verify_attestation(commitment, b64url_encode(b"[1, 2, 3]"))


class TestSignedAttestation:
    """Attestations signed with a bidder key."""

    @pytest.mark.asyncio
    async def test_signed_verifies(self, commitment):
        kp = generate_keypair()
        attestor = StructuralAttestor(keypair=kp)
        attestation = await attestor.attest(commitment, kp.address)

        claims = parse_attestation(attestation)
        assert claims.is_signed
        assert claims.public_key == kp.public_key_hex
        assert verify_attestation(commitment, attestation)

    @pytest.mark.asyncio
    async def test_foreign_public_key_fails(self, commitment):
        kp = generate_keypair()
        attestation = await StructuralAttestor(keypair=kp).attest(commitment, kp.address)
        forged = reencode(attestation, public_key=generate_keypair().public_key_hex)
        assert not verify_attestation(commitment, forged)

    @pytest.mark.asyncio
    async def test_signing_for_another_identity_refused(self, commitment):
        attestor = StructuralAttestor(keypair=generate_keypair())
        with pytest.raises(AttestationError):
            await attestor.attest(commitment, BIDDER)
        assert attestor.attestations_created == 0

    def test_signature_from_other_key_does_not_authenticate_identity(self, commitment):
        """A valid signature by a key that is not the identity's fails."""
        other = generate_keypair()
        timestamp, nonce = 1_700_000_000_000, "00" * 8
        binding = compute_binding(commitment, BIDDER, timestamp, nonce)
        claims = {
            "v": 1,
            "timestamp": timestamp,
            "identity": BIDDER,
            "nonce": nonce,
            "binding": binding,
            "signature": sign(bytes.fromhex(binding), other.private_key).hex(),
            "public_key": other.public_key_hex,
        }
        attestation = b64url_encode(json.dumps(claims).encode())

        assert parse_attestation(attestation).is_signed
        assert not verify_attestation(commitment, attestation)

    @pytest.mark.asyncio
    async def test_checksummed_identity_accepted(self, commitment):
        kp = generate_keypair()
        identity = "0x" + kp.address[2:].upper()
        attestation = await StructuralAttestor(keypair=kp).attest(commitment, identity)
        assert verify_attestation(commitment, attestation)

    @pytest.mark.asyncio
    async def test_signature_without_key_fails(self, commitment):
        kp = generate_keypair()
        attestation = await StructuralAttestor(keypair=kp).attest(commitment, kp.address)
        stripped = reencode(attestation, public_key=None)
        assert not verify_attestation(commitment, stripped)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
