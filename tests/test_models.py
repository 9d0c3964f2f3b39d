"""
Tests for Split Ledger

Test strategy:
1. Unit tests for individual components (models, guard, calculators)
2. Flow tests for snapshot recomputation
3. No I/O anywhere (audit events go to an in-memory sink)
"""

import pytest
from datetime import date
from decimal import Decimal

from splitledger.models.expense import (
    Balance,
    BalanceStatus,
    BalanceSummary,
    Expense,
    ExpenseParticipant,
    Member,
    ParticipantInput,
    Payment,
    Settlement,
    SplitMethod,
    ValidationIssue,
    ValidationResult,
)
from splitledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)


class TestLedgerModels:
    """Tests for expense, payment and member models."""

    def test_member_label_falls_back_to_id(self):
        """Test Member.label without a display name."""
        assert Member(user_id="u1").label == "u1"
        assert Member(user_id="u1", display_name="Asha").label == "Asha"

    def test_participant_input_strips_whitespace(self):
        """Test that whitespace is stripped from ids and names."""
        data = ParticipantInput(user_id="  a  ", display_name=" Asha ")
        assert data.user_id == "a"
        assert data.display_name == "Asha"

    def test_expense_participant_rejects_negative_share(self):
        """Test that negative share amounts are rejected."""
        with pytest.raises(ValueError):
            ExpenseParticipant(user_id="a", share_amount=Decimal("-1"))

    def test_expense_split_helpers(self):
        """Test Expense participant lookups and split check."""
        expense = Expense(
            group_id="g1",
            payer_id="a",
            amount=Decimal("30.00"),
            currency="eur",
            participants=(
                ExpenseParticipant(user_id="a", share_amount=Decimal("10.00")),
                ExpenseParticipant(user_id="b", share_amount=Decimal("20.00")),
            ),
            expense_date=date(2024, 12, 1),
        )
        assert expense.currency == "EUR"
        assert expense.is_valid_split is True
        assert expense.participant_count == 2
        assert expense.is_participant("b")
        assert not expense.is_participant("c")
        assert expense.is_payer("a")
        assert expense.get_participant("b").share_amount == Decimal("20.00")

    def test_expense_invalid_split_detected(self):
        """Test is_valid_split when shares miss the amount by one cent."""
        expense = Expense(
            group_id="g1",
            payer_id="a",
            amount=Decimal("30.00"),
            participants=(
                ExpenseParticipant(user_id="a", share_amount=Decimal("14.99")),
                ExpenseParticipant(user_id="b", share_amount=Decimal("15.00")),
            ),
        )
        assert expense.is_valid_split is False

    def test_expense_is_immutable(self):
        """Test that an expense cannot be edited in place."""
        expense = Expense(group_id="g1", payer_id="a", amount=Decimal("1"))
        with pytest.raises(ValueError):
            expense.amount = Decimal("2")

    def test_payment_validity(self):
        """Test Payment amount and self-payment checks."""
        ok = Payment(payer_id="a", recipient_id="b", amount=Decimal("5"))
        self_payment = Payment(payer_id="a", recipient_id="a", amount=Decimal("5"))
        zero = Payment(payer_id="a", recipient_id="b", amount=Decimal("0"))
        assert ok.is_valid
        assert not self_payment.is_valid
        assert not zero.is_valid
        assert ok.involves_user("b")
        assert not ok.involves_user("c")


class TestBalanceAndSettlementModels:
    """Tests for derived output models."""

    def test_balance_status(self):
        """Test owes / owed / settled classification."""
        assert Balance(user_id="a", balance=Decimal("-3")).status == BalanceStatus.OWES
        assert Balance(user_id="a", balance=Decimal("3")).status == BalanceStatus.OWED
        assert Balance(user_id="a", balance=Decimal("0.00")).status == BalanceStatus.SETTLED

    def test_balance_status_text(self):
        """Test balance status text."""
        assert Balance(user_id="a", balance=Decimal("-3.50")).status_text == "Owes USD 3.50"
        assert Balance(user_id="a", balance=Decimal("3.50")).status_text == "Is owed USD 3.50"
        assert Balance(user_id="a", balance=Decimal("0")).status_text == "Settled"

    def test_settlement_text(self):
        """Test settlement phrasing from each side."""
        settlement = Settlement(
            payer_id="b",
            payer_name="Ben",
            recipient_id="a",
            recipient_name="Asha",
            amount=Decimal("30.00"),
        )
        assert settlement.settlement_text == "Ben should pay Asha USD 30.00"
        assert settlement.text_for_user("b") == "You should pay Asha USD 30.00"
        assert settlement.text_for_user("a") == "Ben should pay you USD 30.00"
        assert settlement.text_for_user("c") == settlement.settlement_text
        assert settlement.is_valid

    def test_settlement_self_payment_invalid(self):
        """Test that a settlement to oneself is invalid."""
        settlement = Settlement(payer_id="a", recipient_id="a", amount=Decimal("1"))
        assert settlement.is_valid is False

    def test_balance_summary_fully_settled(self):
        """Test BalanceSummary.is_fully_settled."""
        summary = BalanceSummary(total_owed=Decimal("0"), total_owing=Decimal("0"))
        assert summary.is_fully_settled is True


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.BALANCES_COMPUTED,
            description="Balances computed",
        )
        assert event.event_type == AuditEventType.BALANCES_COMPUTED
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEventBuilder.balance_invariant_violated(
            group_id="g1",
            residual="0.01",
        )
        log_dict = event.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["event_type"] == "balance_invariant_violated"
        assert log_dict["severity"] == "error"
        assert log_dict["entity_id"] == "g1"
        assert log_dict["details"]["residual"] == "0.01"

    def test_audit_event_builder_settlement_residual(self):
        """Test AuditEventBuilder.settlement_residual."""
        event = AuditEventBuilder.settlement_residual(unsettled={"a": "5.00"})
        assert event.event_type == AuditEventType.SETTLEMENT_RESIDUAL
        assert event.severity == AuditSeverity.ERROR
        assert event.details["unsettled"] == {"a": "5.00"}


class TestValidationResult:
    """Tests for ValidationResult model."""

    def test_validation_result_has_errors(self):
        """Test has_errors property."""
        result = ValidationResult(
            issues=(
                ValidationIssue(
                    field="total",
                    issue_type="missing",
                    message="Total is required",
                    severity="error",
                ),
            ),
        )
        assert result.has_errors is True
        assert result.is_valid is False
        assert result.error_count == 1
        assert result.first_error.field == "total"

    def test_validation_result_warnings_only(self):
        """Test that warnings don't count as errors."""
        result = ValidationResult(
            issues=(
                ValidationIssue(
                    field="amount",
                    issue_type="suspicious_value",
                    message="Amount seems high",
                    severity="warning",
                ),
            ),
        )
        assert result.has_errors is False
        assert result.is_valid is True
        assert result.first_error is None
        assert result.messages == ["Amount seems high"]

    def test_issue_severity_pattern(self):
        """Test that unknown severities are rejected."""
        with pytest.raises(ValueError):
            ValidationIssue(field="x", issue_type="y", message="z", severity="fatal")


class TestSplitMethods:
    """Tests for the split method enum."""

    def test_all_methods_exist(self):
        """Test that expected split methods exist."""
        for method in ["equal", "percentage", "exact", "shares"]:
            assert SplitMethod(method) is not None

    def test_method_values(self):
        """Test split method string values."""
        assert SplitMethod.EQUAL.value == "equal"
        assert SplitMethod.SHARES.value == "shares"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
