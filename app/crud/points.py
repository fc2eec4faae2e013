from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.errors import NotFoundError
from app.helpers.utils import paginate
from app.models.points import UserPointsEntry
from app.models.user import User

def get_points_summary(db: Session, user_id: int) -> dict:
    balance = db.query(User.points).filter(User.id == user_id).scalar()
    if balance is None:
        raise NotFoundError("user_not_found", {"user_id": user_id})
    ledger_total = (
        db.query(func.coalesce(func.sum(UserPointsEntry.points), 0))
        .filter(UserPointsEntry.user_id == user_id)
        .scalar()
    )
    earned = (
        db.query(func.coalesce(func.sum(UserPointsEntry.points), 0))
        .filter(UserPointsEntry.user_id == user_id, UserPointsEntry.points > 0)
        .scalar()
    )
    return {
        "user_id": user_id,
        "total_points": balance,
        "ledger_total": ledger_total,
        "total_earned": earned,
        "total_spent": earned - ledger_total,
    }

def get_points_history(db: Session, user_id: int, page: int = 1, page_size: int = 10) -> dict:
    query = (
        db.query(UserPointsEntry)
        .filter(UserPointsEntry.user_id == user_id)
        .order_by(UserPointsEntry.created_at.desc(), UserPointsEntry.id.desc())
    )
    total, entries = paginate(query, page, page_size)
    return {
        "total": total,
        "items": [
            {
                "id": entry.id,
                "points": entry.points,
                "type": entry.type,
                "description": entry.description,
                "order_id": entry.order_id,
                "created_at": entry.created_at,
            }
            for entry in entries
        ],
    }
