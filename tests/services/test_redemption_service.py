"""
Tests for redeeming claimed coupons against orders.
"""

from datetime import timedelta

import pytest

from app.core.errors import ConflictError, NoUsesRemainingError, NotFoundError, ValidationError
from app.helpers.utils import utc_now
from app.models import CouponUsage, Order, PaymentRecord, UserCoupon
from app.services.coupons import redemption_service
from app.services.orders import order_service


def get_claim(db, user, code):
    db.expire_all()
    return db.query(UserCoupon).filter(UserCoupon.user_id == user.id, UserCoupon.coupon_code == code).one()


class TestRedeem:

    def test_single_use_claim_is_spent(self, db, make_user, make_coupon, make_order, claim_coupon):
        user = make_user()
        coupon = make_coupon(code="ONCE", usage_limit=1)
        claim_coupon(user, "ONCE")
        order = make_order(user)

        usage = redemption_service.redeem(db, user.id, "ONCE", order.id)

        claim = get_claim(db, user, "ONCE")
        assert claim.remaining_uses == 0
        assert claim.is_valid is False
        assert usage.order_id == order.id
        db.refresh(order)
        assert order.coupon_id == coupon.id

    def test_second_redemption_of_single_use_claim_fails(self, db, make_user, make_coupon, make_order, claim_coupon):
        user = make_user()
        make_coupon(code="ONCE", usage_limit=1)
        claim_coupon(user, "ONCE")
        redemption_service.redeem(db, user.id, "ONCE", make_order(user).id)

        with pytest.raises(NoUsesRemainingError) as exc:
            redemption_service.redeem(db, user.id, "ONCE", make_order(user).id)

        assert exc.value.key == "coupon_no_uses_remaining"
        assert db.query(CouponUsage).count() == 1

    def test_multi_use_claim_counts_down(self, db, make_user, make_coupon, make_order, claim_coupon):
        user = make_user()
        make_coupon(code="TWICE", usage_limit=2)
        claim_coupon(user, "TWICE")

        redemption_service.redeem(db, user.id, "TWICE", make_order(user).id)
        claim = get_claim(db, user, "TWICE")
        assert claim.remaining_uses == 1
        assert claim.is_valid is True

        redemption_service.redeem(db, user.id, "TWICE", make_order(user).id)
        claim = get_claim(db, user, "TWICE")
        assert claim.remaining_uses == 0
        assert claim.is_valid is False

        with pytest.raises(NoUsesRemainingError):
            redemption_service.redeem(db, user.id, "TWICE", make_order(user).id)

    def test_unlimited_claim_stays_unlimited(self, db, make_user, make_coupon, make_order, claim_coupon):
        user = make_user()
        make_coupon(code="FOREVER", usage_limit=-1)
        claim_coupon(user, "FOREVER")

        for _ in range(3):
            redemption_service.redeem(db, user.id, "FOREVER", make_order(user).id)

        claim = get_claim(db, user, "FOREVER")
        assert claim.remaining_uses == -1
        assert claim.is_valid is True
        assert db.query(CouponUsage).filter(CouponUsage.coupon_code == "FOREVER").count() == 3

    def test_unclaimed_coupon(self, db, make_user, make_coupon, make_order):
        user = make_user()
        make_coupon(code="NOTMINE")
        with pytest.raises(NoUsesRemainingError):
            redemption_service.redeem(db, user.id, "NOTMINE", make_order(user).id)

    def test_expired_claim(self, db, make_user, make_coupon, make_order, claim_coupon):
        user = make_user()
        make_coupon(code="OLD")
        claim = claim_coupon(user, "OLD")
        claim.expires_at = utc_now() - timedelta(minutes=1)
        db.commit()

        with pytest.raises(ValidationError) as exc:
            redemption_service.redeem(db, user.id, "OLD", make_order(user).id)

        assert exc.value.key == "coupon_claim_expired"
        assert get_claim(db, user, "OLD").remaining_uses == 1

    def test_deleted_coupon(self, db, make_user, make_coupon, make_order, claim_coupon):
        user = make_user()
        coupon = make_coupon(code="GONE")
        claim_coupon(user, "GONE")
        coupon.is_valid = False
        db.commit()

        with pytest.raises(NotFoundError) as exc:
            redemption_service.redeem(db, user.id, "GONE", make_order(user).id)
        assert exc.value.key == "coupon_not_found"

    def test_order_of_another_user(self, db, make_user, make_coupon, make_order, claim_coupon):
        user = make_user(account="owner")
        other = make_user(account="other")
        make_coupon(code="MINE")
        claim_coupon(user, "MINE")

        with pytest.raises(NotFoundError) as exc:
            redemption_service.redeem(db, user.id, "MINE", make_order(other).id)
        assert exc.value.key == "order_not_found"

    def test_order_that_already_has_a_coupon(self, db, make_user, make_coupon, make_order, claim_coupon):
        user = make_user()
        first = make_coupon(code="FIRST")
        make_coupon(code="SECOND")
        claim_coupon(user, "SECOND")
        order = make_order(user, coupon_id=first.id)

        with pytest.raises(ConflictError) as exc:
            redemption_service.redeem(db, user.id, "SECOND", order.id)

        assert exc.value.key == "order_already_has_coupon"
        assert get_claim(db, user, "SECOND").remaining_uses == 1

    def test_cancelled_order_is_rejected(self, db, make_user, make_vinyl, make_coupon, claim_coupon, place_order):
        user = make_user()
        make_coupon(code="LATE")
        claim_coupon(user, "LATE")
        result = place_order(user, [(make_vinyl(), 1)])
        order_service.cancel_order(db, result.order_id, user_id=user.id)

        with pytest.raises(ConflictError) as exc:
            redemption_service.redeem(db, user.id, "LATE", result.order_id)

        assert exc.value.key == "order_cancelled"
        assert get_claim(db, user, "LATE").remaining_uses == 1
        assert db.query(CouponUsage).count() == 0
        assert db.query(Order).one().coupon_id is None

    def test_paid_order_is_rejected(self, db, make_user, make_vinyl, make_coupon, claim_coupon, place_order):
        user = make_user()
        make_coupon(code="LATE")
        claim_coupon(user, "LATE")
        result = place_order(user, [(make_vinyl(), 1)])
        order_service.update_payment_status(db, result.order_id, "success")

        with pytest.raises(ConflictError) as exc:
            redemption_service.redeem(db, user.id, "LATE", result.order_id)

        assert exc.value.key == "order_already_paid"
        assert get_claim(db, user, "LATE").remaining_uses == 1


class TestRedeemReprices:

    def test_discount_is_applied_to_order_and_payment_record(
        self, db, make_user, make_vinyl, make_coupon, claim_coupon, place_order
    ):
        user = make_user()
        make_coupon(code="SPIN100", discount_type="fixed", discount_value=100)
        claim_coupon(user, "SPIN100")
        result = place_order(user, [(make_vinyl(price=500), 2)])
        assert result.amount_due == 1000

        redemption_service.redeem(db, user.id, "SPIN100", result.order_id)

        db.expire_all()
        order = db.query(Order).one()
        assert order.discount_amount == 100
        assert order.amount_due == 900
        assert db.query(PaymentRecord).one().trade_amount == 900

    def test_percent_discount_only_counts_target_category(
        self, db, make_user, make_vinyl, make_coupon, claim_coupon, place_order
    ):
        user = make_user()
        make_coupon(code="JAZZ10", discount_type="percent", discount_value=10, target_type="product", target_value="2")
        claim_coupon(user, "JAZZ10")
        jazz = make_vinyl(name="Blue Train", price=600, category_id=2)
        classical = make_vinyl(name="Goldberg Variations", price=400, category_id=1)
        result = place_order(user, [(jazz, 1), (classical, 1)])

        redemption_service.redeem(db, user.id, "JAZZ10", result.order_id)

        db.expire_all()
        order = db.query(Order).one()
        assert order.discount_amount == 60
        assert order.amount_due == 940

    def test_ineligible_order_keeps_claim_and_totals(
        self, db, make_user, make_vinyl, make_coupon, claim_coupon, place_order
    ):
        user = make_user()
        make_coupon(code="BIGSPEND", min_spend=5000)
        claim_coupon(user, "BIGSPEND")
        result = place_order(user, [(make_vinyl(price=500), 1)])

        with pytest.raises(ValidationError) as exc:
            redemption_service.redeem(db, user.id, "BIGSPEND", result.order_id)

        assert exc.value.key == "coupon_min_spend_not_met"
        assert get_claim(db, user, "BIGSPEND").remaining_uses == 1
        db.expire_all()
        order = db.query(Order).one()
        assert order.amount_due == 500
        assert order.coupon_id is None
