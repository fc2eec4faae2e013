# app/services/notifications/notification_service.py
import logging

logger = logging.getLogger(__name__)


class LoggingNotifier:
    """Stands in for the mail sender: records what would have been delivered."""

    def send_verification_code(self, subject: str, purpose: str, code: str) -> None:
        logger.info("Verification code for %s (%s) queued for delivery", subject, purpose)
        logger.debug("Verification code for %s: %s", subject, code)

    def send_order_confirmation(self, email: str, order_no: str, amount_due: int) -> None:
        logger.info("Order confirmation %s (amount %s) queued for %s", order_no, amount_due, email)


def get_notifier() -> LoggingNotifier:
    return LoggingNotifier()
