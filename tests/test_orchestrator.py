"""Tests for the snapshot flow."""

import pytest
from datetime import date
from decimal import Decimal

from splitledger.calculation import InvalidSplitError
from splitledger.models.audit import AuditEventType
from splitledger.models.expense import Member, ParticipantInput, SplitMethod
from splitledger.orchestrator import GroupSnapshot, create_ledger_components
from splitledger.queries import ExpenseQuery, InvalidQueryError


ASHA = Member(user_id="a", display_name="Asha")
BEN = Member(user_id="b", display_name="Ben")
CHEN = Member(user_id="c", display_name="Chen")
MEMBERS = (ASHA, BEN, CHEN)


@pytest.fixture
def components(settings):
    return create_ledger_components(collect_audit_events=True, settings=settings)


@pytest.fixture
def flow(components):
    return components[0]


@pytest.fixture
def ledger_sink(components):
    return components[2]


def _everyone():
    return [ParticipantInput(user_id=m.user_id, display_name=m.display_name) for m in MEMBERS]


class TestCreateExpense:
    """Tests for building expenses from split configurations."""

    def test_equal_expense(self, flow):
        expense = flow.create_expense(
            "g1", ASHA, Decimal("100.00"), SplitMethod.EQUAL, _everyone(),
            description="Dinner", expense_date=date(2024, 6, 1), expense_id="e1",
        )
        assert expense.id == "e1"
        assert expense.payer_name == "Asha"
        assert expense.is_valid_split
        assert [p.share_amount for p in expense.participants] == [
            Decimal("33.34"), Decimal("33.33"), Decimal("33.33"),
        ]

    def test_invalid_configuration_raises(self, flow):
        data = [
            ParticipantInput(user_id="a", percentage=Decimal("60")),
            ParticipantInput(user_id="b", percentage=Decimal("30")),
        ]
        with pytest.raises(InvalidSplitError) as exc:
            flow.create_expense("g1", ASHA, Decimal("100"), SplitMethod.PERCENTAGE, data)
        assert "100%" in exc.value.issue.message

    def test_edit_amount_keeps_weights(self, flow):
        data = [
            ParticipantInput(user_id="a", shares=3),
            ParticipantInput(user_id="b", shares=1),
        ]
        expense = flow.create_expense("g1", ASHA, Decimal("40.00"), SplitMethod.SHARES, data)
        edited = flow.edit_expense_amount(expense, Decimal("80.00"), SplitMethod.SHARES)
        assert edited.id == expense.id
        assert edited.amount == Decimal("80.00")
        assert [p.share_amount for p in edited.participants] == [Decimal("60.00"), Decimal("20.00")]


class TestRecompute:
    """Tests for full snapshot recomputation."""

    def _snapshot(self, flow, payments=()):
        dinner = flow.create_expense(
            "g1", ASHA, Decimal("90.00"), SplitMethod.EQUAL, _everyone(),
            expense_date=date(2024, 6, 1),
        )
        taxi = flow.create_expense(
            "g1", BEN, Decimal("30.00"), SplitMethod.EXACT,
            [
                ParticipantInput(user_id="b", amount=Decimal("10.00")),
                ParticipantInput(user_id="c", amount=Decimal("20.00")),
            ],
            expense_date=date(2024, 6, 3),
        )
        return GroupSnapshot(
            group_id="g1",
            currency="USD",
            members=MEMBERS,
            expenses=(dinner, taxi),
            payments=tuple(payments),
        )

    def test_view_is_consistent(self, flow, ledger_sink):
        view = flow.recompute(self._snapshot(flow))

        balances = {b.user_id: b.balance for b in view.balances}
        assert balances == {"a": Decimal("60.00"), "b": Decimal("-10.00"), "c": Decimal("-50.00")}
        assert view.summary.total_owed == Decimal("60.00")
        assert view.summary.total_owing == Decimal("60.00")
        assert [(s.payer_id, s.recipient_id, s.amount) for s in view.settlements] == [
            ("c", "a", Decimal("50.00")),
            ("b", "a", Decimal("10.00")),
        ]
        assert view.balance_for("c").display_name == "Chen"
        assert len(view.settlements_for("b")) == 1
        assert ledger_sink.violations() == []
        assert len(ledger_sink.events_of_type(AuditEventType.SNAPSHOT_RECOMPUTED)) == 1

    def test_confirming_plan_settles_group(self, flow):
        snapshot = self._snapshot(flow)
        view = flow.recompute(snapshot)
        payments = [flow.record_settlement(s, group_id="g1") for s in view.settlements]

        settled = flow.recompute(snapshot.model_copy(update={"payments": tuple(payments)}))
        assert all(b.is_settled for b in settled.balances)
        assert settled.settlements == ()
        assert settled.summary.is_fully_settled

    def test_recorded_payment_fields(self, flow, ledger_sink):
        view = flow.recompute(self._snapshot(flow))
        payment = flow.record_settlement(view.settlements[0], group_id="g1", description="Cash")
        assert payment.payer_id == "c"
        assert payment.recipient_name == "Asha"
        assert payment.amount == Decimal("50.00")
        assert payment.is_valid
        assert len(ledger_sink.events_of_type(AuditEventType.PAYMENT_RECORDED)) == 1

    def test_query_narrows_expenses(self, flow):
        query = ExpenseQuery(date_from=date(2024, 6, 2))
        view = flow.recompute(self._snapshot(flow), query=query)
        balances = {b.user_id: b.balance for b in view.balances}
        assert balances == {"a": Decimal("0.00"), "b": Decimal("20.00"), "c": Decimal("-20.00")}

    def test_invalid_query_raises(self, flow):
        query = ExpenseQuery(min_amount=Decimal("5"), max_amount=Decimal("1"))
        with pytest.raises(InvalidQueryError):
            flow.recompute(self._snapshot(flow), query=query)

    def test_recompute_is_repeatable(self, flow):
        snapshot = self._snapshot(flow)
        first = flow.recompute(snapshot)
        second = flow.recompute(snapshot)
        assert first.balances == second.balances
        assert first.settlements == second.settlements


class TestAmountRounding:
    """Stored amounts always match the sum of their shares."""

    def _pair(self):
        return [ParticipantInput(user_id="a"), ParticipantInput(user_id="b")]

    def test_sub_cent_decimal_rounded(self, flow):
        expense = flow.create_expense("g1", ASHA, Decimal("100.005"), SplitMethod.EQUAL, self._pair())
        assert expense.amount == Decimal("100.00")
        assert expense.is_valid_split

    def test_float_amount_rounded(self, flow):
        expense = flow.create_expense("g1", ASHA, 10.1, SplitMethod.EQUAL, self._pair())
        assert expense.amount == Decimal("10.10")
        assert [p.share_amount for p in expense.participants] == [Decimal("5.05"), Decimal("5.05")]
        assert expense.is_valid_split

    def test_edited_amount_rounded(self, flow):
        expense = flow.create_expense("g1", ASHA, Decimal("10.00"), SplitMethod.EQUAL, self._pair())
        edited = flow.edit_expense_amount(expense, Decimal("10.125"), SplitMethod.EQUAL)
        assert edited.amount == Decimal("10.12")
        assert edited.is_valid_split
        assert [p.share_percentage for p in edited.participants] == [Decimal("50.00"), Decimal("50.00")]

    def test_zero_decimal_currency(self, flow):
        expense = flow.create_expense(
            "g1", ASHA, Decimal("1000.4"), SplitMethod.EQUAL, self._pair(), currency="JPY",
        )
        assert expense.amount == Decimal("1000")
        assert expense.is_valid_split

    def test_amount_rounding_to_zero_rejected(self, flow):
        with pytest.raises(InvalidSplitError):
            flow.create_expense("g1", ASHA, Decimal("0.001"), SplitMethod.EQUAL, self._pair())
