"""Tests for running balance reconciliation."""

from decimal import Decimal

import pytest

from statement_errors import BalanceMismatchError
from statement_reconcile import BalanceDirection, BalanceReconciler

D = Decimal


class TestAdd:

    def test_consistent_rows_pass(self):
        reconciler = BalanceReconciler(BalanceDirection.ADD)
        reconciler.seed(D("100.00"))
        for amount, stated in [("-5.00", "95.00"), ("20.00", "115.00"), ("-15.50", "99.50")]:
            reconciler.record(D(amount))
            reconciler.check(D(stated))
        assert reconciler.balance == D("99.50")
        assert reconciler.total == D("-0.50")

    @pytest.mark.parametrize("delta", ["0.01", "-0.01", "10.00"])
    def test_perturbed_balance_fails(self, delta):
        reconciler = BalanceReconciler(BalanceDirection.ADD)
        reconciler.seed(D("100.00"))
        reconciler.record(D("-5.00"))
        with pytest.raises(BalanceMismatchError) as exc_info:
            reconciler.check(D("95.00") + D(delta))
        assert exc_info.value.expected == D("95.00")

    def test_first_balance_seeds_when_no_opening(self):
        reconciler = BalanceReconciler()
        reconciler.record(D("-5.00"))
        reconciler.check(D("40.00"))
        reconciler.record(D("10.00"))
        reconciler.check(D("50.00"))
        with pytest.raises(BalanceMismatchError):
            reconciler.record(D("1.00"))
            reconciler.check(D("50.00"))

    def test_reset_forgets_everything(self):
        reconciler = BalanceReconciler()
        reconciler.seed(D("1.00"))
        reconciler.record(D("2.00"))
        reconciler.reset()
        assert reconciler.balance is None
        assert reconciler.opening is None
        assert reconciler.total == 0


class TestReverse:

    def test_newest_first(self):
        # rows printed newest first: each balance is the one after its own amount
        reconciler = BalanceReconciler(BalanceDirection.REVERSE)
        reconciler.record(D("-10.00"))
        reconciler.check(D("90.00"))
        reconciler.record(D("40.00"))
        reconciler.check(D("100.00"))
        reconciler.record(D("5.00"))
        reconciler.check(D("60.00"))

    def test_mismatch(self):
        reconciler = BalanceReconciler(BalanceDirection.REVERSE)
        reconciler.record(D("-10.00"))
        reconciler.check(D("90.00"))
        reconciler.record(D("40.00"))
        with pytest.raises(BalanceMismatchError):
            reconciler.check(D("80.00"))


class TestNone:

    def test_never_checks_running_balance(self):
        reconciler = BalanceReconciler(BalanceDirection.NONE)
        reconciler.seed(D("10.00"))
        reconciler.record(D("1.00"))
        reconciler.check(D("999.00"))

    def test_closing_balance(self):
        reconciler = BalanceReconciler(BalanceDirection.NONE)
        reconciler.seed(D("10.00"))
        reconciler.record(D("-4.00"))
        reconciler.record(D("6.00"))
        reconciler.check_closing(D("12.00"))
        with pytest.raises(BalanceMismatchError):
            reconciler.check_closing(D("11.00"))
