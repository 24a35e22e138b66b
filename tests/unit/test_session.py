"""
Tests for the bid session state machine.

Tests cover:
1. Encrypt transitions and validation
2. Submit transitions, failures and retries
3. Guards against double invocation
4. Close and stale-result suppression
"""

import asyncio
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from cipherbid.core.auction import AuctionCatalogue, AuctionItem
from cipherbid.core.bidding import BidSession, SessionState, SimulatedChainSubmitter
from cipherbid.core.errors import (
    AttestationError,
    CommitmentError,
    StateError,
    SubmissionError,
    ValidationError,
)
from cipherbid.crypto.attestation import StructuralAttestor, verify_attestation
from cipherbid.crypto.commitment import SimulatedCommitter


# =============================================================================
# Fixtures
# =============================================================================

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
BIDDER = "0x8f3a41c9d2b7e6a05c1f4e9d3b2a7c6e5f4d3c2b"


class GatedCommitter:
    """Committer that blocks until released."""

    def __init__(self):
        self.inner = SimulatedCommitter()
        self.gate = asyncio.Event()
        self.calls = 0

    async def commit(self, amount):
        self.calls += 1
        await self.gate.wait()
        return await self.inner.commit(amount)


class FailingCommitter:
    def __init__(self, error):
        self.error = error

    async def commit(self, amount):
        raise self.error


class ScriptedSubmitter:
    """Submitter returning (or raising) queued outcomes."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = []
        self.gate = None

    async def submit(self, auction_id, commitment, attestation):
        self.calls.append((auction_id, commitment, attestation))
        if self.gate is not None:
            await self.gate.wait()
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


@pytest.fixture
def catalogue():
    return AuctionCatalogue([
        AuctionItem(
            id="a1",
            title="Cosmic Dreams NFT",
            description="Generative art",
            starting_bid=Decimal("0.5"),
            encrypted_bids_count=3,
            start_time=NOW - timedelta(hours=1),
            end_time=NOW + timedelta(hours=1),
        ),
        AuctionItem(
            id="later",
            title="Founders Pass",
            description="Membership",
            starting_bid=Decimal("1"),
            start_time=NOW + timedelta(hours=1),
            end_time=NOW + timedelta(hours=2),
        ),
    ])


def make_session(catalogue, committer=None, submitter=None, identity=BIDDER, auction_id="a1", clock=None):
    clock = clock or (lambda: NOW)
    return BidSession(
        auction_id=auction_id,
        catalogue=catalogue,
        identity=identity,
        committer=committer or SimulatedCommitter(),
        attestor=StructuralAttestor(),
        submitter=submitter or SimulatedChainSubmitter(delay_ms=0, clock=clock),
        clock=clock,
    )


def count(catalogue, auction_id="a1"):
    return catalogue.require(auction_id).encrypted_bids_count


# =============================================================================
# Encrypt Tests
# =============================================================================


class TestEncrypt:
    """IDLE -> ENCRYPTING -> ENCRYPTED."""

    @pytest.mark.asyncio
    async def test_encrypt_seals_bid(self, catalogue):
        session = make_session(catalogue)
        sealed = await session.encrypt("1.2")

        assert session.state == SessionState.ENCRYPTED
        assert sealed is session.sealed
        assert session.amount == Decimal("1.2")
        assert verify_attestation(sealed.commitment, sealed.attestation)
        assert session.redacted_commitment.startswith("\U0001F512 ")
        assert count(catalogue) == 3

    @pytest.mark.asyncio
    async def test_invalid_amount_stays_idle(self, catalogue):
        session = make_session(catalogue)
        with pytest.raises(ValidationError) as exc:
            await session.encrypt("0.1")

        assert exc.value.constraint == "below_floor"
        assert session.state == SessionState.IDLE
        assert session.display_state == SessionState.FAILED
        assert session.sealed is None
        assert "0.5" in session.last_error

    @pytest.mark.asyncio
    async def test_missing_amount_is_non_numeric(self, catalogue):
        session = make_session(catalogue)
        with pytest.raises(ValidationError) as exc:
            await session.encrypt()
        assert exc.value.constraint == "non_numeric"

    @pytest.mark.asyncio
    async def test_retry_after_validation_error(self, catalogue):
        session = make_session(catalogue)
        with pytest.raises(ValidationError):
            await session.encrypt("-1")
        await session.encrypt("2")
        assert session.state == SessionState.ENCRYPTED
        assert session.last_error is None

    @pytest.mark.asyncio
    async def test_amount_locked_after_encrypt(self, catalogue):
        session = make_session(catalogue)
        session.set_amount("1.2")
        await session.encrypt()
        assert session.amount_locked
        with pytest.raises(StateError):
            session.set_amount("5")

    @pytest.mark.asyncio
    async def test_second_encrypt_after_success_rejected(self, catalogue):
        committer = SimulatedCommitter()
        session = make_session(catalogue, committer=committer)
        await session.encrypt("1.2")
        with pytest.raises(StateError):
            await session.encrypt("1.3")
        assert committer.commitments_created == 1

    @pytest.mark.asyncio
    async def test_concurrent_encrypt_is_noop(self, catalogue):
        committer = GatedCommitter()
        session = make_session(catalogue, committer=committer)

        first = asyncio.create_task(session.encrypt("1.2"))
        await asyncio.sleep(0)
        assert session.state == SessionState.ENCRYPTING

        assert await session.encrypt("1.3") is None
        committer.gate.set()
        sealed = await first

        assert committer.calls == 1
        assert sealed is not None
        assert session.amount == Decimal("1.2")

    @pytest.mark.asyncio
    async def test_backend_failure_returns_to_idle(self, catalogue):
        session = make_session(catalogue, committer=FailingCommitter(CommitmentError("backend down")))
        with pytest.raises(CommitmentError):
            await session.encrypt("1.2")
        assert session.state == SessionState.IDLE
        assert session.display_state == SessionState.FAILED
        assert session.last_error == "backend down"

    @pytest.mark.asyncio
    async def test_unexpected_backend_error_is_wrapped(self, catalogue):
        session = make_session(catalogue, committer=FailingCommitter(RuntimeError("boom")))
        with pytest.raises(CommitmentError) as exc:
            await session.encrypt("1.2")
        assert isinstance(exc.value.__cause__, RuntimeError)
        assert session.state == SessionState.IDLE

    @pytest.mark.asyncio
    async def test_missing_identity_fails_attestation(self, catalogue):
        session = make_session(catalogue, identity="")
        with pytest.raises(AttestationError):
            await session.encrypt("1.2")
        assert session.state == SessionState.IDLE
        assert session.sealed is None

    @pytest.mark.asyncio
    async def test_inactive_auction_rejected(self, catalogue):
        session = make_session(catalogue, auction_id="later")
        with pytest.raises(ValidationError) as exc:
            await session.encrypt("5")
        assert exc.value.constraint == "auction_not_active"

    @pytest.mark.asyncio
    async def test_cancelled_task_returns_to_idle(self, catalogue):
        committer = GatedCommitter()
        session = make_session(catalogue, committer=committer)
        task = asyncio.create_task(session.encrypt("1.2"))
        await asyncio.sleep(0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert session.state == SessionState.IDLE


# =============================================================================
# Submit Tests
# =============================================================================


class TestSubmit:
    """ENCRYPTED -> SUBMITTING -> SUBMITTED/CLOSED."""

    @pytest.mark.asyncio
    async def test_submit_in_idle_rejected_without_network(self, catalogue):
        submitter = ScriptedSubmitter(True)
        session = make_session(catalogue, submitter=submitter)
        with pytest.raises(StateError):
            await session.submit()
        assert submitter.calls == []

    @pytest.mark.asyncio
    async def test_submit_while_encrypting_rejected_without_network(self, catalogue):
        committer = GatedCommitter()
        submitter = ScriptedSubmitter(True)
        session = make_session(catalogue, committer=committer, submitter=submitter)

        task = asyncio.create_task(session.encrypt("1.2"))
        await asyncio.sleep(0)
        with pytest.raises(StateError):
            await session.submit()
        assert submitter.calls == []

        committer.gate.set()
        await task

    @pytest.mark.asyncio
    async def test_success_increments_once_and_closes(self, catalogue):
        submitter = ScriptedSubmitter(True)
        session = make_session(catalogue, submitter=submitter)
        sealed = await session.encrypt("1.2")

        receipt = await session.submit()

        assert count(catalogue) == 4
        assert receipt.encrypted_bids_count == 4
        assert receipt.auction_id == "a1"
        assert receipt.submitted_at == NOW
        assert submitter.calls == [("a1", sealed.commitment, sealed.attestation)]
        assert session.state == SessionState.CLOSED
        assert session.sealed is None

    @pytest.mark.asyncio
    async def test_rejection_keeps_artifacts_for_retry(self, catalogue):
        submitter = ScriptedSubmitter(False, True)
        session = make_session(catalogue, submitter=submitter)
        sealed = await session.encrypt("1.2")

        with pytest.raises(SubmissionError):
            await session.submit()
        assert session.state == SessionState.ENCRYPTED
        assert session.sealed is sealed
        assert session.last_error
        assert count(catalogue) == 3

        await session.submit()
        assert count(catalogue) == 4
        assert submitter.calls[0] == submitter.calls[1]

    @pytest.mark.asyncio
    async def test_collaborator_exception_becomes_submission_error(self, catalogue):
        submitter = ScriptedSubmitter(ConnectionError("rpc down"))
        session = make_session(catalogue, submitter=submitter)
        await session.encrypt("1.2")

        with pytest.raises(SubmissionError) as exc:
            await session.submit()
        assert isinstance(exc.value.__cause__, ConnectionError)
        assert session.state == SessionState.ENCRYPTED
        assert count(catalogue) == 3

    @pytest.mark.asyncio
    async def test_double_submit_is_noop(self, catalogue):
        submitter = ScriptedSubmitter(True)
        submitter.gate = asyncio.Event()
        session = make_session(catalogue, submitter=submitter)
        await session.encrypt("1.2")

        first = asyncio.create_task(session.submit())
        await asyncio.sleep(0)
        assert session.state == SessionState.SUBMITTING
        assert await session.submit() is None

        submitter.gate.set()
        await first
        assert len(submitter.calls) == 1
        assert count(catalogue) == 4


class TestSubmitAfterEnd:
    """A bid sealed while active is not counted once the auction ends."""

    @pytest.mark.asyncio
    async def test_submit_after_end_rejected_before_network(self, catalogue):
        now = [NOW - timedelta(minutes=30)]
        submitter = ScriptedSubmitter(True)
        session = make_session(catalogue, submitter=submitter, clock=lambda: now[0])
        sealed = await session.encrypt("1.2")

        now[0] = NOW + timedelta(hours=1, minutes=5)
        with pytest.raises(ValidationError) as exc:
            await session.submit()

        assert exc.value.constraint == "auction_not_active"
        assert submitter.calls == []
        assert session.state == SessionState.ENCRYPTED
        assert session.sealed is sealed
        assert session.last_error
        assert count(catalogue) == 3

    @pytest.mark.asyncio
    async def test_auction_ends_while_submitting(self, catalogue):
        now = [NOW]
        submitter = ScriptedSubmitter(True)
        submitter.gate = asyncio.Event()
        session = make_session(catalogue, submitter=submitter, clock=lambda: now[0])
        await session.encrypt("1.2")

        task = asyncio.create_task(session.submit())
        await asyncio.sleep(0)
        now[0] = NOW + timedelta(hours=2)
        submitter.gate.set()

        with pytest.raises(ValidationError) as exc:
            await task
        assert exc.value.constraint == "auction_not_active"
        assert session.state == SessionState.ENCRYPTED
        assert count(catalogue) == 3

    @pytest.mark.asyncio
    async def test_end_boundary_counts_as_ended(self, catalogue):
        now = [NOW]
        session = make_session(catalogue, clock=lambda: now[0])
        await session.encrypt("1.2")
        now[0] = NOW + timedelta(hours=1)
        with pytest.raises(ValidationError):
            await session.submit()
        assert count(catalogue) == 3


# =============================================================================
# Close Tests
# =============================================================================


class TestClose:
    """Cancellation and stale-result guard."""

    @pytest.mark.asyncio
    async def test_close_during_encrypt_drops_result(self, catalogue):
        committer = GatedCommitter()
        session = make_session(catalogue, committer=committer)

        task = asyncio.create_task(session.encrypt("1.2"))
        await asyncio.sleep(0)
        session.close()
        committer.gate.set()

        assert await task is None
        assert session.state == SessionState.CLOSED
        assert session.sealed is None
        assert session.last_error is None
        assert count(catalogue) == 3

    @pytest.mark.asyncio
    async def test_close_during_encrypt_drops_late_failure(self, catalogue):
        class LateFailure:
            def __init__(self):
                self.gate = asyncio.Event()

            async def commit(self, amount):
                await self.gate.wait()
                raise CommitmentError("too late")

        committer = LateFailure()
        session = make_session(catalogue, committer=committer)
        task = asyncio.create_task(session.encrypt("1.2"))
        await asyncio.sleep(0)
        session.close()
        committer.gate.set()

        assert await task is None
        assert session.last_error is None

    @pytest.mark.asyncio
    async def test_close_during_submit_never_counts(self, catalogue):
        submitter = ScriptedSubmitter(True)
        submitter.gate = asyncio.Event()
        session = make_session(catalogue, submitter=submitter)
        await session.encrypt("1.2")

        task = asyncio.create_task(session.submit())
        await asyncio.sleep(0)
        session.close()
        submitter.gate.set()

        assert await task is None
        assert count(catalogue) == 3

    @pytest.mark.asyncio
    async def test_closed_session_rejects_actions(self, catalogue):
        session = make_session(catalogue)
        session.close()
        session.close()
        with pytest.raises(StateError):
            await session.encrypt("1.2")
        with pytest.raises(StateError):
            await session.submit()
        with pytest.raises(StateError):
            session.set_amount("1")

    def test_unknown_auction(self, catalogue):
        with pytest.raises(KeyError):
            make_session(catalogue, auction_id="missing")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
