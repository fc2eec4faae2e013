from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from app.models import Cart, CartItem, Order, Vinyl
from app.services.points import points_service


def test_checkout(client: TestClient, db: Session, make_user, make_vinyl, checkout_payload, login_as) -> None:
    user = make_user(points=500)
    vinyl = make_vinyl(price=500, stock=5)
    login_as(user)

    response = client.post("/api/v1/orders/checkout", json=checkout_payload([(vinyl, 2)]))

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["total_price"] == 1000
    assert data["points_got"] == 100
    assert data["payment"] == {"status": "pending", "method": "ECPAY", "amount": 1000}
    assert points_service.get_balance(db, user.id) == 600


def test_checkout_replay_with_idempotency_key(client: TestClient, db: Session, make_user, make_vinyl, checkout_payload, login_as) -> None:
    login_as(make_user())
    vinyl = make_vinyl(stock=5)
    payload = checkout_payload([(vinyl, 1)])
    headers = {"Idempotency-Key": "7f3c1a"}

    first = client.post("/api/v1/orders/checkout", json=payload, headers=headers)
    second = client.post("/api/v1/orders/checkout", json=payload, headers=headers)

    assert first.status_code == 201
    assert second.status_code == 200
    assert second.json()["data"]["replayed"] is True
    assert second.json()["data"]["order_id"] == first.json()["data"]["order_id"]
    assert db.query(Order).count() == 1


def test_checkout_out_of_stock(client: TestClient, db: Session, make_user, make_vinyl, checkout_payload, login_as) -> None:
    login_as(make_user())
    vinyl = make_vinyl(stock=1)

    response = client.post("/api/v1/orders/checkout", json=checkout_payload([(vinyl, 2)]))

    assert response.status_code == 400
    error = response.json()["error"]
    assert error["kind"] == "insufficient_stock"
    assert error["vinyl_id"] == vinyl.id
    assert db.query(Order).count() == 0
    assert db.query(Vinyl.stock).filter(Vinyl.id == vinyl.id).scalar() == 1


def test_checkout_rejects_bad_body(client: TestClient, make_user, login_as) -> None:
    login_as(make_user())

    response = client.post("/api/v1/orders/checkout", json={"items": [], "payment_method": "ECPAY"})

    assert response.status_code == 400
    assert response.json()["error"]["kind"] == "validation"


def test_list_detail_and_cancel(client: TestClient, db: Session, make_user, make_vinyl, place_order, login_as) -> None:
    user = make_user()
    vinyl = make_vinyl(stock=3)
    result = place_order(user, [(vinyl, 2)])
    login_as(user)

    response = client.get("/api/v1/orders")
    assert response.status_code == 200
    assert response.json()["data"]["total"] == 1
    assert response.json()["data"]["items"][0]["item_count"] == 1

    response = client.get(f"/api/v1/orders/{result.merchant_trade_no}")
    assert response.status_code == 200
    assert response.json()["data"]["id"] == result.order_id
    assert response.json()["data"]["items"][0]["quantity"] == 2

    response = client.patch(f"/api/v1/orders/{result.order_id}/cancel")
    assert response.status_code == 200
    assert response.json()["data"]["payment_status"] == "cancelled"
    assert db.query(Vinyl.stock).filter(Vinyl.id == vinyl.id).scalar() == 3

    response = client.patch(f"/api/v1/orders/{result.order_id}/cancel")
    assert response.status_code == 409


def test_order_of_another_user_is_hidden(client: TestClient, make_user, make_vinyl, place_order, login_as) -> None:
    owner = make_user(account="owner")
    result = place_order(owner, [(make_vinyl(), 1)])
    login_as(make_user(account="other"))

    response = client.get(f"/api/v1/orders/{result.order_id}")

    assert response.status_code == 404


def test_payment_status_update(client: TestClient, make_user, make_vinyl, place_order, login_as) -> None:
    user = make_user()
    result = place_order(user, [(make_vinyl(), 1)])
    login_as(user)

    response = client.patch(f"/api/v1/orders/{result.order_id}/payment-status", json={"status": "success"})

    assert response.status_code == 200
    assert response.json()["data"]["payment_status"] == "confirmed"


def test_preview_from_checked_cart(client: TestClient, db: Session, make_user, make_vinyl, login_as) -> None:
    user = make_user()
    vinyl = make_vinyl(price=450, stock=4)
    cart = Cart(user_id=user.id)
    db.add(cart)
    db.flush()
    db.add(CartItem(cart_id=cart.id, vinyl_id=vinyl.id, quantity=2, is_checked=True))
    db.commit()
    login_as(user)

    response = client.post("/api/v1/orders/preview", json={})

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["total_price"] == 900
    assert data["items"][0]["subtotal"] == 900
    assert db.query(Order).count() == 0
    assert db.query(Vinyl).one().stock == 4
