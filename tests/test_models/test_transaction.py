"""Tests for the Transaction model — status graph, defaults, encryption."""

import uuid
from decimal import Decimal

import pytest

from hawala.models.rate import RateSide
from hawala.models.transaction import (
    VALID_TRANSITIONS,
    Transaction,
    TransactionStatus,
    allowed_targets,
    is_terminal,
)

S = TransactionStatus


@pytest.fixture
def txn():
    """Create a minimal Transaction instance."""
    return Transaction(
        reference_code="HW0A1B0123456789",
        agent_id=uuid.uuid4(),
        from_currency="USD",
        to_currency="AFN",
        from_amount=Decimal("100"),
        to_amount=Decimal("7080"),
        rate=Decimal("70.8"),
        rate_side=RateSide.SELL,
        fee=Decimal("177"),
        sender_name="Ahmad Karimi",
        receiver_name="Farid Noori",
        receiver_city="Herat",
    )


# ---------------------------------------------------------------------------
# Creation
# ---------------------------------------------------------------------------


class TestTransactionCreation:
    def test_defaults(self):
        """Python-side defaults are populated on construction."""
        bare = Transaction(reference_code="HW0A1B0123456789", agent_id=uuid.uuid4())
        assert bare.id is not None
        assert bare.status == S.PENDING
        assert bare.fee == Decimal("0")
        assert bare.fee_percentage == Decimal("0")
        assert bare.minimum_fee == Decimal("0")
        assert bare.completed_at is None
        assert bare.created_at is not None

    def test_net_amount(self, txn):
        assert txn.net_amount == Decimal("6903")

    def test_repr_contains_reference(self, txn):
        r = repr(txn)
        assert "HW0A1B0123456789" in r
        assert "PENDING" in r


# ---------------------------------------------------------------------------
# Status transitions
# ---------------------------------------------------------------------------


class TestStatusTransitions:
    def test_graph_covers_every_status(self):
        assert set(VALID_TRANSITIONS) == set(S)

    @pytest.mark.parametrize(
        "from_status, to_status",
        [
            (S.PENDING, S.COMPLETED),
            (S.PENDING, S.CANCELLED),
            (S.COMPLETED, S.WITHDRAWN),
        ],
    )
    def test_valid_edges(self, from_status, to_status):
        assert Transaction.is_valid_transition(from_status, to_status)

    @pytest.mark.parametrize(
        "from_status, to_status",
        [
            (S.PENDING, S.WITHDRAWN),
            (S.PENDING, S.PENDING),
            (S.COMPLETED, S.CANCELLED),
            (S.COMPLETED, S.PENDING),
            (S.CANCELLED, S.PENDING),
            (S.WITHDRAWN, S.COMPLETED),
        ],
    )
    def test_invalid_edges(self, from_status, to_status):
        assert not Transaction.is_valid_transition(from_status, to_status)

    def test_terminal_states(self):
        assert is_terminal(S.CANCELLED)
        assert is_terminal(S.WITHDRAWN)
        assert not is_terminal(S.PENDING)
        assert not is_terminal(S.COMPLETED)

    def test_withdrawn_disabled_makes_completed_terminal(self):
        """Without the WITHDRAWN edge, COMPLETED has no way out."""
        assert allowed_targets(S.COMPLETED, withdrawn_enabled=False) == set()
        assert is_terminal(S.COMPLETED, withdrawn_enabled=False)
        assert not Transaction.is_valid_transition(
            S.COMPLETED, S.WITHDRAWN, withdrawn_enabled=False,
        )
        assert allowed_targets(S.PENDING, withdrawn_enabled=False) == {S.COMPLETED, S.CANCELLED}

    def test_allowed_targets_returns_copy(self):
        allowed_targets(S.PENDING).add(S.WITHDRAWN)
        assert S.WITHDRAWN not in VALID_TRANSITIONS[S.PENDING]


# ---------------------------------------------------------------------------
# Encryption
# ---------------------------------------------------------------------------


class TestPhoneEncryption:
    def test_round_trip(self, txn):
        txn.set_sender_phone("+15550100001")
        txn.set_receiver_phone("+93799333444")

        assert txn.sender_phone != "+15550100001"
        assert txn.receiver_phone != "+93799333444"
        assert txn.get_sender_phone() == "+15550100001"
        assert txn.get_receiver_phone() == "+93799333444"

    def test_unset_phone_is_none(self, txn):
        assert txn.get_sender_phone() is None
