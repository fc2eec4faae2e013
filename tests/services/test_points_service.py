"""
Tests for the points ledger.

The cached balance on the user row must always equal the sum of the user's
ledger entries.
"""

import pytest
from sqlalchemy import func

from app.core.errors import InsufficientPointsError, NotFoundError, ValidationError
from app.models import UserPointsEntry
from app.services.points import points_service


def ledger_total(db, user_id):
    return db.query(func.coalesce(func.sum(UserPointsEntry.points), 0)).filter(UserPointsEntry.user_id == user_id).scalar()


class TestComputeReward:

    @pytest.mark.parametrize(
        "total_price, expected",
        [(1000, 100), (999, 99), (9, 0), (0, 0), (-50, 0)],
    )
    def test_one_point_per_ten_spent(self, total_price, expected):
        assert points_service.compute_reward(total_price) == expected

    def test_custom_unit(self):
        assert points_service.compute_reward(1000, unit=100) == 10


class TestLedger:

    def test_credit_and_debit_keep_balance_in_step_with_ledger(self, db, make_user):
        user = make_user(points=200)

        points_service.debit(db, user.id, 50, "Used on order")
        points_service.credit(db, user.id, 30, "Reward")
        db.commit()

        assert points_service.get_balance(db, user.id) == 180
        assert ledger_total(db, user.id) == 180
        spend = db.query(UserPointsEntry).filter(UserPointsEntry.type == "spend").one()
        assert spend.points == -50

    def test_debit_more_than_balance(self, db, make_user):
        user = make_user(points=40)

        with pytest.raises(InsufficientPointsError) as exc:
            points_service.debit(db, user.id, 41, "Too much")
        db.rollback()

        assert exc.value.detail == {"requested": 41, "available": 40}
        assert points_service.get_balance(db, user.id) == 40
        assert ledger_total(db, user.id) == 40

    def test_debit_unknown_user(self, db):
        with pytest.raises(NotFoundError):
            points_service.debit(db, 999, 10, "Nobody")

    def test_credit_unknown_user(self, db):
        with pytest.raises(NotFoundError):
            points_service.credit(db, 999, 10, "Nobody")

    @pytest.mark.parametrize("amount", [0, -5])
    def test_amount_must_be_positive(self, db, make_user, amount):
        user = make_user(points=10)
        with pytest.raises(ValidationError):
            points_service.credit(db, user.id, amount, "Bad")
        with pytest.raises(ValidationError):
            points_service.debit(db, user.id, amount, "Bad")

    def test_ensure_balance(self, db, make_user):
        user = make_user(points=100)
        points_service.ensure_balance(db, user.id, 100)
        with pytest.raises(InsufficientPointsError):
            points_service.ensure_balance(db, user.id, 101)


class TestAdjust:

    def test_positive_adjustment(self, db, make_user):
        user = make_user(points=10)

        entry = points_service.adjust(db, user.id, 15, "Goodwill")

        assert entry.type == "adjust"
        assert entry.points == 15
        assert points_service.get_balance(db, user.id) == 25
        assert ledger_total(db, user.id) == 25

    def test_negative_adjustment(self, db, make_user):
        user = make_user(points=10)

        entry = points_service.adjust(db, user.id, -4, "Correction")

        assert entry.points == -4
        assert points_service.get_balance(db, user.id) == 6

    def test_negative_adjustment_cannot_overdraw(self, db, make_user):
        user = make_user(points=10)
        with pytest.raises(InsufficientPointsError):
            points_service.adjust(db, user.id, -11, "Correction")
        assert points_service.get_balance(db, user.id) == 10
        assert ledger_total(db, user.id) == 10

    def test_zero_adjustment(self, db, make_user):
        user = make_user()
        with pytest.raises(ValidationError):
            points_service.adjust(db, user.id, 0, "Nothing")
