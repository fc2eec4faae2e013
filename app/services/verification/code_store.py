# app/services/verification/code_store.py
"""
Verification codes (registration, password reset, email change).

Codes live behind :class:`VerificationCodeStore`; the SQL implementation
keeps a hash of the code with an explicit expiry and an attempt counter.
"""
import abc
import logging
import secrets
from datetime import timedelta
from typing import Optional

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import ValidationError
from app.core.security import hash_code, verify_code_hash
from app.helpers.utils import as_utc, utc_now
from app.models.verification import VerificationCode

logger = logging.getLogger(__name__)


class VerificationCodeStore(abc.ABC):
    @abc.abstractmethod
    def issue(self, subject: str, purpose: str) -> str:
        """Create a new code for ``subject``; earlier unused codes stop working."""

    @abc.abstractmethod
    def verify(self, subject: str, purpose: str, code: str) -> None:
        """Consume ``code`` or raise ValidationError."""


def generate_code(length: int) -> str:
    return "".join(secrets.choice("0123456789") for _ in range(length))


class SqlVerificationCodeStore(VerificationCodeStore):
    def __init__(
        self,
        db: Session,
        ttl: Optional[timedelta] = None,
        max_attempts: Optional[int] = None,
        code_length: Optional[int] = None,
        clock=utc_now,
    ):
        self.db = db
        self.ttl = ttl or timedelta(minutes=settings.VERIFICATION_CODE_TTL_MINUTES)
        self.max_attempts = max_attempts or settings.VERIFICATION_CODE_MAX_ATTEMPTS
        self.code_length = code_length or settings.VERIFICATION_CODE_LENGTH
        self.clock = clock

    def _latest(self, subject: str, purpose: str) -> Optional[VerificationCode]:
        return (
            self.db.query(VerificationCode)
            .filter(
                VerificationCode.subject == subject,
                VerificationCode.purpose == purpose,
                VerificationCode.consumed_at == None,
            )
            .order_by(VerificationCode.created_at.desc(), VerificationCode.id.desc())
            .first()
        )

    def issue(self, subject: str, purpose: str) -> str:
        now = self.clock()
        code = generate_code(self.code_length)
        try:
            # Retire codes that were issued earlier and never used
            self.db.query(VerificationCode).filter(
                VerificationCode.subject == subject,
                VerificationCode.purpose == purpose,
                VerificationCode.consumed_at == None,
            ).update({VerificationCode.consumed_at: now}, synchronize_session=False)

            self.db.add(VerificationCode(
                subject=subject,
                purpose=purpose,
                code_hash=hash_code(code),
                expires_at=now + self.ttl,
                attempts=0,
                max_attempts=self.max_attempts,
                created_at=now,
            ))
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.info("Issued %s verification code for %s", purpose, subject)
        return code

    def verify(self, subject: str, purpose: str, code: str) -> None:
        now = self.clock()
        entry = self._latest(subject, purpose)
        if not entry:
            raise ValidationError("invalid_or_used_code")

        if now > as_utc(entry.expires_at):
            raise ValidationError("code_expired")

        if entry.attempts >= entry.max_attempts:
            raise ValidationError("code_attempts_exceeded")

        if not verify_code_hash(code, entry.code_hash):
            self.db.query(VerificationCode).filter(VerificationCode.id == entry.id).update(
                {VerificationCode.attempts: VerificationCode.attempts + 1}, synchronize_session=False
            )
            self.db.commit()
            remaining = entry.max_attempts - entry.attempts
            if remaining <= 0:
                raise ValidationError("code_attempts_exceeded")
            raise ValidationError("invalid_code", {"attempts_remaining": remaining})

        consumed = self.db.query(VerificationCode).filter(
            VerificationCode.id == entry.id,
            VerificationCode.consumed_at == None,
            VerificationCode.attempts < VerificationCode.max_attempts,
        ).update({VerificationCode.consumed_at: now}, synchronize_session=False)
        self.db.commit()
        if consumed == 0:
            raise ValidationError("invalid_or_used_code")
        logger.info("Verified %s code for %s", purpose, subject)
