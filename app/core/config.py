# app/core/config.py
from typing import List
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./groove_store.db"

    # JWT
    SECRET_KEY: str = "change-me"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 180

    # Checkout
    ALLOWED_PAYMENT_METHODS: List[str] = ["ECPAY", "LINE_PAY", "CREDIT_CARD"]
    POINTS_REWARD_UNIT: int = 10
    HOME_SHIPPING_FEE: int = 0
    STORE_PICKUP_SHIPPING_FEE: int = 0

    # Coupon listings look back this many days for expired/used coupons
    COUPON_HISTORY_DAYS: int = 90

    # Verification codes
    VERIFICATION_CODE_TTL_MINUTES: int = 10
    VERIFICATION_CODE_MAX_ATTEMPTS: int = 5
    VERIFICATION_CODE_LENGTH: int = 6

    DEFAULT_LANGUAGE: str = "en"

    class Config:
        env_file = ".env"

settings = Settings()
