"""
Milestone model tests: validation, defaults and status updates.
"""
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from lexmarket.cases.milestones import MAX_AMOUNT, create_milestone, update_milestone, validate_milestone
from lexmarket.cases.schemas import MilestoneCreate, MilestoneUpdate
from lexmarket.exceptions import ValidationError
from lexmarket.models import MilestoneStatus


class TestCreateMilestone:
    def test_empty_title_rejected(self):
        with pytest.raises(ValidationError) as exc:
            create_milestone(title="", description="x", amount=1)
        assert exc.value.errors == ["Title is required"]

    def test_negative_amount_rejected(self):
        with pytest.raises(ValidationError) as exc:
            create_milestone(title="x", description="y", amount=-1)
        assert exc.value.errors == ["Amount cannot be negative"]

    def test_zero_amount_allowed(self):
        milestone = create_milestone(title="x", description="y", amount=0)
        assert milestone.amount == Decimal("0")

    @pytest.mark.parametrize("amount", [Decimal("NaN"), Decimal("Infinity"), Decimal("-Infinity")])
    def test_non_finite_amount_rejected(self, amount):
        with pytest.raises(ValidationError) as exc:
            create_milestone(title="x", description="y", amount=amount)
        assert exc.value.errors == ["Amount must be a finite number"]

    def test_amount_upper_bound(self):
        assert create_milestone(title="x", description="y", amount=MAX_AMOUNT).amount == MAX_AMOUNT
        with pytest.raises(ValidationError) as exc:
            create_milestone(title="x", description="y", amount=Decimal("12345678901234567.89"))
        assert exc.value.errors == [f"Amount cannot exceed {MAX_AMOUNT}"]

    def test_all_violations_reported(self):
        with pytest.raises(ValidationError) as exc:
            create_milestone(title="  ", description="", amount=-5)
        assert exc.value.errors == [
            "Title is required",
            "Description is required",
            "Amount cannot be negative",
        ]

    def test_defaults(self):
        milestone = create_milestone(title="Filing", description="File the claim", amount=Decimal("120.5"))
        assert milestone.status == MilestoneStatus.PENDING
        assert milestone.milestone_id.startswith("milestone_")
        assert milestone.created_at == milestone.updated_at
        assert milestone.created_at.tzinfo is not None
        assert milestone.completed_at is None
        assert str(milestone.amount) == "120.50"

    def test_ids_are_unique(self):
        first = create_milestone(title="a", description="b", amount=1)
        second = create_milestone(title="a", description="b", amount=1)
        assert first.milestone_id != second.milestone_id

    def test_created_completed_sets_completed_at(self):
        milestone = create_milestone(
            title="a", description="b", amount=1, status=MilestoneStatus.COMPLETED
        )
        assert milestone.completed_at == milestone.created_at


class TestUpdateMilestone:
    @pytest.fixture()
    def milestone(self):
        past = datetime.now(timezone.utc) - timedelta(days=1)
        return create_milestone(title="Filing", description="File the claim", amount=100, now=past)

    def test_merges_fields_and_refreshes_updated_at(self, milestone):
        updated = update_milestone(milestone, MilestoneUpdate(title="Filing v2", amount=Decimal("99.999")))
        assert updated.title == "Filing v2"
        assert updated.description == "File the claim"
        assert updated.amount == Decimal("100.00")
        assert updated.updated_at > milestone.updated_at
        assert updated.milestone_id == milestone.milestone_id
        assert updated.created_at == milestone.created_at

    def test_completing_sets_completed_at(self, milestone):
        updated = update_milestone(milestone, MilestoneUpdate(status=MilestoneStatus.COMPLETED))
        assert updated.status == MilestoneStatus.COMPLETED
        assert updated.completed_at == updated.updated_at

    def test_completing_twice_keeps_first_completed_at(self, milestone):
        done = update_milestone(milestone, MilestoneUpdate(status=MilestoneStatus.COMPLETED))
        again = update_milestone(done, MilestoneUpdate(status=MilestoneStatus.COMPLETED))
        assert again.completed_at == done.completed_at

    def test_any_transition_allowed(self, milestone):
        done = update_milestone(milestone, MilestoneUpdate(status=MilestoneStatus.COMPLETED))
        back = update_milestone(done, MilestoneUpdate(status=MilestoneStatus.PENDING))
        assert back.status == MilestoneStatus.PENDING

    def test_explicit_none_does_not_clear_required_fields(self, milestone):
        updated = update_milestone(milestone, MilestoneUpdate(title=None, status=None))
        assert updated.title == "Filing"
        assert updated.status == MilestoneStatus.PENDING

    def test_invalid_patch_rejected(self, milestone):
        with pytest.raises(ValidationError) as exc:
            update_milestone(milestone, MilestoneUpdate(title="", amount=Decimal("-1")))
        assert "Title is required" in exc.value.errors
        assert "Amount cannot be negative" in exc.value.errors

    def test_oversized_amount_patch_rejected(self, milestone):
        with pytest.raises(ValidationError) as exc:
            update_milestone(milestone, MilestoneUpdate(amount=Decimal("1e30")))
        assert exc.value.errors == [f"Amount cannot exceed {MAX_AMOUNT}"]


def test_validate_milestone_prefixes_position():
    errors = validate_milestone(MilestoneCreate(title="", description="d", amount=1), position=2)
    assert errors == ["Milestone 2: Title is required"]
