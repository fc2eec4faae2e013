# app/services/inventory/inventory_service.py
import logging
from typing import Optional

from sqlalchemy.orm import Session

from app.core.errors import InsufficientStockError, NotFoundError, ValidationError
from app.models.enums import StockMovementSource
from app.models.product import StockMovement, Vinyl

logger = logging.getLogger(__name__)


def _validate_quantity(qty: int) -> None:
    if not isinstance(qty, int) or isinstance(qty, bool) or qty <= 0:
        raise ValidationError("invalid_quantity", {"quantity": qty})


def reserve(db: Session, vinyl_id: int, qty: int, order_id: Optional[int] = None) -> StockMovement:
    """
    Take ``qty`` units of a vinyl out of stock inside the caller's transaction.

    The read only produces a precise error early; the conditional UPDATE is
    what actually guards against overselling.
    """
    _validate_quantity(qty)

    current = db.query(Vinyl.stock).filter(Vinyl.id == vinyl_id).scalar()
    if current is None:
        raise NotFoundError("product_not_found", {"vinyl_id": vinyl_id})
    if current < qty:
        raise InsufficientStockError("insufficient_stock", {"vinyl_id": vinyl_id, "requested": qty, "available": current})

    updated = (
        db.query(Vinyl)
        .filter(Vinyl.id == vinyl_id, Vinyl.stock >= qty)
        .update({Vinyl.stock: Vinyl.stock - qty}, synchronize_session=False)
    )
    if updated == 0:
        logger.warning("Stock reservation lost race for vinyl %s (qty %s)", vinyl_id, qty)
        raise InsufficientStockError("insufficient_stock", {"vinyl_id": vinyl_id, "requested": qty})

    movement = StockMovement(
        vinyl_id=vinyl_id,
        is_stock_in=False,
        quantity=qty,
        source=StockMovementSource.ORDER.value,
        order_id=order_id,
    )
    db.add(movement)
    return movement


def release(db: Session, vinyl_id: int, qty: int, order_id: Optional[int] = None) -> None:
    """Return ``qty`` units to stock; only order cancellation calls this."""
    _validate_quantity(qty)

    updated = (
        db.query(Vinyl)
        .filter(Vinyl.id == vinyl_id)
        .update({Vinyl.stock: Vinyl.stock + qty}, synchronize_session=False)
    )
    if updated == 0:
        raise NotFoundError("product_not_found", {"vinyl_id": vinyl_id})

    db.add(StockMovement(
        vinyl_id=vinyl_id,
        is_stock_in=True,
        quantity=qty,
        source=StockMovementSource.CANCELLATION.value,
        order_id=order_id,
    ))


def get_stock(db: Session, vinyl_id: int) -> int:
    stock = db.query(Vinyl.stock).filter(Vinyl.id == vinyl_id).scalar()
    if stock is None:
        raise NotFoundError("product_not_found", {"vinyl_id": vinyl_id})
    return stock
