# app/services/points/points_service.py
import logging
from typing import Optional

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import InsufficientPointsError, NotFoundError, ValidationError
from app.models.enums import PointsEntryType
from app.models.points import UserPointsEntry
from app.models.user import User

logger = logging.getLogger(__name__)


def compute_reward(total_price: int, unit: Optional[int] = None) -> int:
    """Points earned for an order: one point per ``unit`` currency spent, rounded down."""
    unit = unit or settings.POINTS_REWARD_UNIT
    if total_price <= 0:
        return 0
    return total_price // unit


def _validate_amount(amount: int) -> None:
    if not isinstance(amount, int) or isinstance(amount, bool) or amount <= 0:
        raise ValidationError("invalid_points_amount", {"amount": amount})


def get_balance(db: Session, user_id: int) -> int:
    balance = db.query(User.points).filter(User.id == user_id).scalar()
    if balance is None:
        raise NotFoundError("user_not_found", {"user_id": user_id})
    return balance


def ensure_balance(db: Session, user_id: int, amount: int) -> None:
    """Read-only check used before any write is made."""
    balance = get_balance(db, user_id)
    if balance < amount:
        raise InsufficientPointsError("insufficient_points", {"requested": amount, "available": balance})


def debit(
    db: Session,
    user_id: int,
    amount: int,
    reason: str,
    order_id: Optional[int] = None,
    entry_type: PointsEntryType = PointsEntryType.SPEND,
) -> UserPointsEntry:
    """
    Take points from a user. The balance and the ledger row are written in the
    caller's transaction; the caller commits or rolls back both together.
    """
    _validate_amount(amount)

    updated = (
        db.query(User)
        .filter(User.id == user_id, User.points >= amount)
        .update({User.points: User.points - amount}, synchronize_session=False)
    )
    if updated == 0:
        # Distinguish a missing user from a short balance
        balance = get_balance(db, user_id)
        raise InsufficientPointsError("insufficient_points", {"requested": amount, "available": balance})

    entry = UserPointsEntry(
        user_id=user_id,
        type=entry_type.value,
        points=-amount,
        description=reason,
        order_id=order_id,
    )
    db.add(entry)
    logger.info("Debited %s points from user %s (%s)", amount, user_id, reason)
    return entry


def credit(
    db: Session,
    user_id: int,
    amount: int,
    reason: str,
    order_id: Optional[int] = None,
    entry_type: PointsEntryType = PointsEntryType.EARN,
) -> UserPointsEntry:
    _validate_amount(amount)

    updated = (
        db.query(User)
        .filter(User.id == user_id)
        .update({User.points: User.points + amount}, synchronize_session=False)
    )
    if updated == 0:
        raise NotFoundError("user_not_found", {"user_id": user_id})

    entry = UserPointsEntry(
        user_id=user_id,
        type=entry_type.value,
        points=amount,
        description=reason,
        order_id=order_id,
    )
    db.add(entry)
    logger.info("Credited %s points to user %s (%s)", amount, user_id, reason)
    return entry


def adjust(db: Session, user_id: int, delta: int, reason: str) -> UserPointsEntry:
    """Admin correction; commits on its own."""
    try:
        if delta > 0:
            entry = credit(db, user_id, delta, reason, entry_type=PointsEntryType.ADJUST)
        elif delta < 0:
            entry = debit(db, user_id, -delta, reason, entry_type=PointsEntryType.ADJUST)
        else:
            raise ValidationError("invalid_points_amount", {"amount": delta})
        db.commit()
        db.refresh(entry)
        return entry
    except Exception:
        db.rollback()
        raise
