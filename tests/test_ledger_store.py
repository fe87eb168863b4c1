import sys
import os
from decimal import Decimal

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from ledger_store import LedgerStore
from models import InvariantViolation


class TestLedgerStore:
    def setup_method(self):
        self.ledger = LedgerStore()

    def test_get_or_create_account_creates_zeroed(self):
        account = self.ledger.get_or_create_account(7)

        assert account.client_id == 7
        assert account.available == Decimal("0")
        assert account.held == Decimal("0")
        assert account.locked is False
        assert 7 in self.ledger
        assert len(self.ledger) == 1

    def test_get_or_create_account_returns_existing(self):
        first = self.ledger.get_or_create_account(1)
        second = self.ledger.get_or_create_account(1)
        assert first is second
        assert len(self.ledger) == 1

    def test_get_account_does_not_create(self):
        assert self.ledger.get_account(1) is None
        assert 1 not in self.ledger

    def test_apply_delta(self):
        self.ledger.apply_delta(1, Decimal("10"), Decimal("0"))
        account = self.ledger.apply_delta(1, Decimal("-4"), Decimal("4"))

        assert account.available == Decimal("6")
        assert account.held == Decimal("4")
        assert account.total == Decimal("10")

    def test_apply_delta_negative_available_raises(self):
        self.ledger.apply_delta(1, Decimal("5"), Decimal("0"))

        with pytest.raises(InvariantViolation):
            self.ledger.apply_delta(1, Decimal("-6"), Decimal("0"))

        account = self.ledger.get_account(1)
        assert account.available == Decimal("5")
        assert account.held == Decimal("0")

    def test_apply_delta_negative_held_raises(self):
        with pytest.raises(InvariantViolation):
            self.ledger.apply_delta(1, Decimal("0"), Decimal("-1"))

        assert self.ledger.get_account(1).held == Decimal("0")

    def test_lock_account_idempotent(self):
        self.ledger.lock_account(1)
        self.ledger.lock_account(1)
        assert self.ledger.get_account(1).locked is True

    def test_snapshot_first_seen_order(self):
        for client_id in (3, 1, 2):
            self.ledger.get_or_create_account(client_id)
        self.ledger.apply_delta(1, Decimal("1"), Decimal("0"))

        assert [client_id for client_id, _ in self.ledger.snapshot()] == [3, 1, 2]

    def test_snapshot_is_stable(self):
        for client_id in (5, 4):
            self.ledger.get_or_create_account(client_id)
        assert list(self.ledger.snapshot()) == list(self.ledger.snapshot())

    def test_apply_delta_is_exact_for_large_balances(self):
        amount = Decimal("999999999999999999999999.9999")
        self.ledger.apply_delta(1, amount, Decimal("0"))
        account = self.ledger.apply_delta(1, amount, Decimal("0"))

        assert account.available == Decimal("1999999999999999999999999.9998")
        assert account.total == Decimal("1999999999999999999999999.9998")

    def test_apply_delta_that_would_round_raises(self):
        self.ledger.apply_delta(1, Decimal("1"), Decimal("0"))

        with pytest.raises(InvariantViolation):
            self.ledger.apply_delta(1, Decimal("1E+45"), Decimal("0"))

        assert self.ledger.get_account(1).available == Decimal("1")
