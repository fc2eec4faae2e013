from datetime import datetime, timedelta, timezone

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from app.models import Coupon
from app.services.coupons import redemption_service
from app.services.points import points_service


def coupon_body(code="NEWYEAR", **overrides):
    body = {
        "name": "New Year",
        "code": code,
        "end_at": (datetime.now(timezone.utc) + timedelta(days=30)).isoformat(),
        "total_quantity": 50,
        "usage_limit": 1,
        "discount_type": "percent",
        "discount_value": 15,
    }
    body.update(overrides)
    return body


def test_admin_routes_require_admin(client: TestClient, make_user, login_as) -> None:
    login_as(make_user(is_admin=False))

    response = client.post("/api/admin/v1/coupon/create-coupon", json=coupon_body())

    assert response.status_code == 403
    assert response.json()["error"]["kind"] == "forbidden"


def test_create_and_update_coupon(client: TestClient, db: Session, make_user, login_as) -> None:
    login_as(make_user(account="admin", is_admin=True))

    response = client.post("/api/admin/v1/coupon/create-coupon", json=coupon_body())
    assert response.status_code == 201
    assert response.json()["data"]["code"] == "NEWYEAR"

    response = client.post("/api/admin/v1/coupon/create-coupon", json=coupon_body())
    assert response.status_code == 409

    response = client.put("/api/admin/v1/coupon/update-coupon/NEWYEAR", json={"total_quantity": 80})
    assert response.status_code == 400
    assert response.json()["error"]["key"] == "total_quantity_cannot_increase"

    response = client.put("/api/admin/v1/coupon/update-coupon/NEWYEAR", json={"total_quantity": 0})
    assert response.status_code == 200
    assert response.json()["data"]["status"] == "inactive"


def test_invalid_percent_is_rejected(client: TestClient, make_user, login_as) -> None:
    login_as(make_user(account="admin", is_admin=True))

    response = client.post("/api/admin/v1/coupon/create-coupon", json=coupon_body(discount_value=150))

    assert response.status_code == 400
    assert response.json()["error"]["kind"] == "validation"


def test_sold_out_coupon_cannot_be_reactivated(client: TestClient, make_user, make_coupon, login_as) -> None:
    make_coupon(code="GONE", total_quantity=0, status="inactive")
    login_as(make_user(account="admin", is_admin=True))

    response = client.patch("/api/admin/v1/coupon/toggle-status", json={"code": "GONE", "status": "active"})

    assert response.status_code == 400
    assert response.json()["error"]["key"] == "coupon_supply_exhausted"


def test_bulk_status_and_delete(client: TestClient, db: Session, make_user, make_coupon, login_as) -> None:
    make_coupon(code="A", status="active")
    make_coupon(code="B", status="inactive")
    login_as(make_user(account="admin", is_admin=True))

    response = client.patch("/api/admin/v1/coupon/bulk-status", json={"codes": ["A", "B", "C"], "status": "inactive"})
    assert response.json()["data"] == {
        "total_codes": 3,
        "updated_count": 1,
        "unchanged_count": 1,
        "not_found_count": 1,
        "not_found_codes": ["C"],
    }

    response = client.post("/api/admin/v1/coupon/bulk-delete", json={"codes": ["A", "B"]})
    assert response.json()["data"] == {"updated_count": 2}
    db.expire_all()
    assert db.query(Coupon).filter(Coupon.is_valid == True).count() == 0


def test_coupon_listing_reports_usage(
    client: TestClient, db: Session, make_user, make_coupon, make_order, claim_coupon, login_as
) -> None:
    make_coupon(code="STATS", total_quantity=10)
    buyer = make_user(account="buyer")
    other = make_user(account="other")
    claim_coupon(buyer, "STATS")
    claim_coupon(other, "STATS")
    redemption_service.redeem(db, buyer.id, "STATS", make_order(buyer).id)
    login_as(make_user(account="admin", is_admin=True))

    response = client.post("/api/admin/v1/coupon/get-coupons", json={"search": "STATS"})

    item = response.json()["data"]["items"][0]
    assert item["user_count"] == 2
    assert item["used_count"] == 1
    assert item["usage_rate"] == 50
    assert item["remaining_quantity"] == 8


def test_admin_shipping_and_points(client: TestClient, db: Session, make_user, make_vinyl, place_order, login_as) -> None:
    buyer = make_user(account="buyer")
    result = place_order(buyer, [(make_vinyl(), 1)])
    login_as(make_user(account="admin", is_admin=True))

    response = client.patch(
        f"/api/admin/v1/order/shipping-status/{result.order_id}",
        json={"status": "shipped", "tracking_number": "TW9"},
    )
    assert response.status_code == 200
    assert response.json()["data"]["shipping_status"] == "shipped"

    response = client.post("/api/admin/v1/order/get-orders", json={})
    data = response.json()["data"]
    assert data["total"] == 1
    assert data["items"][0]["customer_account"] == "buyer"
    assert data["meta"]["shipped"] == 1

    response = client.post("/api/admin/v1/points/adjust", json={"user_id": buyer.id, "delta": 25, "reason": "Goodwill"})
    assert response.status_code == 200
    assert response.json()["data"]["balance"] == points_service.get_balance(db, buyer.id)


def test_update_rejects_non_numeric_product_target(client: TestClient, db: Session, make_user, make_coupon, login_as) -> None:
    make_coupon(code="JAZZ10", discount_type="percent", discount_value=10)
    login_as(make_user(account="admin", is_admin=True))

    response = client.put(
        "/api/admin/v1/coupon/update-coupon/JAZZ10",
        json={"target_type": "product", "target_value": "jazz"},
    )

    assert response.status_code == 400
    assert response.json()["error"]["key"] == "invalid_coupon_rules"
    db.expire_all()
    coupon = db.query(Coupon).filter(Coupon.code == "JAZZ10").one()
    assert coupon.target_type == "all"
    assert coupon.target_value is None


def test_update_rejects_percent_above_hundred(client: TestClient, db: Session, make_user, make_coupon, login_as) -> None:
    make_coupon(code="JAZZ10", discount_type="percent", discount_value=10)
    login_as(make_user(account="admin", is_admin=True))

    response = client.put("/api/admin/v1/coupon/update-coupon/JAZZ10", json={"discount_value": 500})

    assert response.status_code == 400
    assert response.json()["error"]["key"] == "invalid_coupon_rules"
    db.expire_all()
    assert db.query(Coupon).filter(Coupon.code == "JAZZ10").one().discount_value == 10


def test_update_checks_rules_against_stored_fields(client: TestClient, make_user, make_coupon, login_as) -> None:
    make_coupon(code="FLAT600", discount_type="fixed", discount_value=600)
    login_as(make_user(account="admin", is_admin=True))

    response = client.put("/api/admin/v1/coupon/update-coupon/FLAT600", json={"discount_type": "percent"})
    assert response.status_code == 400

    response = client.put("/api/admin/v1/coupon/update-coupon/FLAT600", json={"discount_type": "percent", "discount_value": 20})
    assert response.status_code == 200
    assert response.json()["data"]["discount_value"] == 20


def test_checkout_with_broken_product_target_is_a_validation_error(
    client: TestClient, db: Session, make_user, make_vinyl, make_coupon, claim_coupon, checkout_payload, login_as
) -> None:
    buyer = make_user(account="buyer")
    make_coupon(code="LEGACY", target_type="product", target_value="jazz")
    claim_coupon(buyer, "LEGACY")
    login_as(buyer)

    response = client.post("/api/v1/orders/checkout", json=checkout_payload([(make_vinyl(), 1)], coupon_code="LEGACY"))

    assert response.status_code == 400
    assert response.json()["error"]["key"] == "invalid_coupon_rules"
