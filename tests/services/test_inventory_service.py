"""
Tests for stock reservation and release.
"""

import pytest

from app.core.errors import InsufficientStockError, NotFoundError, ValidationError
from app.models import StockMovement
from app.services.inventory import inventory_service


class TestReserve:

    def test_reserve_takes_stock_and_records_movement(self, db, make_vinyl):
        vinyl = make_vinyl(stock=5)

        inventory_service.reserve(db, vinyl.id, 2)
        db.commit()

        assert inventory_service.get_stock(db, vinyl.id) == 3
        movement = db.query(StockMovement).filter(StockMovement.vinyl_id == vinyl.id).one()
        assert movement.quantity == 2
        assert movement.is_stock_in is False
        assert movement.source == "order"

    def test_reserve_exact_stock_leaves_zero(self, db, make_vinyl):
        vinyl = make_vinyl(stock=2)
        inventory_service.reserve(db, vinyl.id, 2)
        db.commit()
        assert inventory_service.get_stock(db, vinyl.id) == 0

    def test_reserve_more_than_stock(self, db, make_vinyl):
        vinyl = make_vinyl(stock=2)

        with pytest.raises(InsufficientStockError) as exc:
            inventory_service.reserve(db, vinyl.id, 3)

        assert exc.value.key == "insufficient_stock"
        assert exc.value.detail["available"] == 2
        db.rollback()
        assert inventory_service.get_stock(db, vinyl.id) == 2

    def test_one_more_buyer_than_stock(self, db, make_vinyl):
        """Stock 2, three single-unit reservations: the third is refused."""
        vinyl = make_vinyl(stock=2)
        inventory_service.reserve(db, vinyl.id, 1)
        db.commit()
        inventory_service.reserve(db, vinyl.id, 1)
        db.commit()

        with pytest.raises(InsufficientStockError):
            inventory_service.reserve(db, vinyl.id, 1)
        db.rollback()

        assert inventory_service.get_stock(db, vinyl.id) == 0

    @pytest.mark.parametrize("qty", [0, -1, True, 1.5])
    def test_invalid_quantity(self, db, make_vinyl, qty):
        vinyl = make_vinyl(stock=5)
        with pytest.raises(ValidationError) as exc:
            inventory_service.reserve(db, vinyl.id, qty)
        assert exc.value.key == "invalid_quantity"

    def test_unknown_vinyl(self, db):
        with pytest.raises(NotFoundError) as exc:
            inventory_service.reserve(db, 404, 1)
        assert exc.value.key == "product_not_found"


class TestRelease:

    def test_release_puts_stock_back(self, db, make_vinyl):
        vinyl = make_vinyl(stock=1)

        inventory_service.release(db, vinyl.id, 3)
        db.commit()

        assert inventory_service.get_stock(db, vinyl.id) == 4
        movement = db.query(StockMovement).filter(StockMovement.vinyl_id == vinyl.id).one()
        assert movement.is_stock_in is True
        assert movement.source == "cancellation"

    def test_release_unknown_vinyl(self, db):
        with pytest.raises(NotFoundError):
            inventory_service.release(db, 404, 1)

    def test_get_stock_unknown_vinyl(self, db):
        with pytest.raises(NotFoundError):
            inventory_service.get_stock(db, 404)
