import enum

class CouponStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"

class DiscountType(str, enum.Enum):
    FIXED = "fixed"
    PERCENT = "percent"
    FREE_SHIPPING = "free_shipping"

class CouponTargetType(str, enum.Enum):
    ALL = "all"
    MEMBER = "member"
    PRODUCT = "product"

class MemberLevel(str, enum.Enum):
    CLASSIC = "mc"
    GOLD = "mg"
    VIP = "mv"
    WELCOME = "mw"

class UserCouponState(str, enum.Enum):
    ACTIVE = "active"
    EXPIRED = "expired"
    USED = "used"

class OrderPaymentStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"

class ShippingStatus(str, enum.Enum):
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"

class PaymentMethod(str, enum.Enum):
    ECPAY = "ECPAY"
    LINE_PAY = "LINE_PAY"
    CREDIT_CARD = "CREDIT_CARD"

class PaymentRecordStatus(str, enum.Enum):
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"
    CANCELLED = "cancelled"

class LogisticsType(str, enum.Enum):
    HOME = "home"
    STORE_711 = "711"

class LogisticsStatus(str, enum.Enum):
    PENDING = "pending"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"

class PointsEntryType(str, enum.Enum):
    EARN = "earn"
    SPEND = "spend"
    ADJUST = "adjust"

class StockMovementSource(str, enum.Enum):
    ORDER = "order"
    CANCELLATION = "cancellation"

class VerificationPurpose(str, enum.Enum):
    REGISTER = "register"
    RESET_PASSWORD = "reset_password"
    UPDATE_EMAIL = "update_email"
