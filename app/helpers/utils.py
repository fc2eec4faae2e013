import re
from datetime import datetime, timezone
from typing import Optional

from fastapi import Request

from app.core.config import settings
from app.models.enums import LogisticsType

MERCHANT_TRADE_NO_LENGTH = 20

def get_lang_from_request(request: Request):
    return request.headers.get("Accept-Language", settings.DEFAULT_LANGUAGE)

def utc_now() -> datetime:
    return datetime.now(timezone.utc)

def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes read back from the database as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)

def format_shipping_address(address: Optional[str], logistics_type: str) -> Optional[str]:
    """
    Normalise the recipient address for the chosen delivery channel.
    Store pickup addresses come from the 7-11 map picker and may contain
    literal "null" parts; home delivery addresses are stored without spaces.
    """
    if address is None:
        return None
    if logistics_type == LogisticsType.STORE_711.value:
        cleaned = re.sub(r"\bnull\b", " ", address)
        return re.sub(r"\s+", " ", cleaned).strip()
    return re.sub(r"\s+", "", address)

def build_merchant_trade_no(order_id: int, now: Optional[datetime] = None) -> str:
    """`od` + YYYYmmddHHMMSS + zero padded order id, capped at 20 characters."""
    now = now or utc_now()
    value = f"od{now.strftime('%Y%m%d%H%M%S')}{order_id:03d}"
    return value[:MERCHANT_TRADE_NO_LENGTH]

def paginate(query, page: int, page_size: int):
    total = query.count()
    offset = (page - 1) * page_size
    return total, query.offset(offset).limit(page_size).all()
