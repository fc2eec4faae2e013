"""
Tests for the SQL-backed verification code store.
"""

from datetime import timedelta

import pytest

from app.core.errors import ValidationError
from app.helpers.utils import utc_now
from app.models import VerificationCode
from app.services.verification.code_store import SqlVerificationCodeStore, generate_code


class FakeClock:
    def __init__(self):
        self.now = utc_now()

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


class TestVerificationCodeStore:

    @pytest.fixture(autouse=True)
    def store(self, db):
        self.db = db
        self.clock = FakeClock()
        self.store = SqlVerificationCodeStore(
            db, ttl=timedelta(minutes=10), max_attempts=3, code_length=6, clock=self.clock
        )

    def test_generated_codes_are_digits(self):
        code = generate_code(6)
        assert len(code) == 6
        assert code.isdigit()

    def test_issue_stores_only_a_hash(self):
        code = self.store.issue("mei@example.com", "register")

        entry = self.db.query(VerificationCode).one()
        assert entry.code_hash != code
        assert entry.attempts == 0
        assert entry.max_attempts == 3

    def test_correct_code_verifies_once(self):
        code = self.store.issue("mei@example.com", "register")

        self.store.verify("mei@example.com", "register", code)

        with pytest.raises(ValidationError) as exc:
            self.store.verify("mei@example.com", "register", code)
        assert exc.value.key == "invalid_or_used_code"

    def test_code_is_bound_to_purpose(self):
        code = self.store.issue("mei@example.com", "register")
        with pytest.raises(ValidationError) as exc:
            self.store.verify("mei@example.com", "reset_password", code)
        assert exc.value.key == "invalid_or_used_code"

    def test_expired_code(self):
        code = self.store.issue("mei@example.com", "register")
        self.clock.advance(minutes=11)

        with pytest.raises(ValidationError) as exc:
            self.store.verify("mei@example.com", "register", code)
        assert exc.value.key == "code_expired"

    def test_wrong_codes_use_up_attempts(self):
        code = self.store.issue("mei@example.com", "register")
        wrong = "000000" if code != "000000" else "111111"

        with pytest.raises(ValidationError) as exc:
            self.store.verify("mei@example.com", "register", wrong)
        assert exc.value.key == "invalid_code"
        assert exc.value.detail == {"attempts_remaining": 2}

        with pytest.raises(ValidationError):
            self.store.verify("mei@example.com", "register", wrong)
        with pytest.raises(ValidationError) as exc:
            self.store.verify("mei@example.com", "register", wrong)
        assert exc.value.key == "code_attempts_exceeded"

        # Even the right code is refused once attempts are used up
        with pytest.raises(ValidationError) as exc:
            self.store.verify("mei@example.com", "register", code)
        assert exc.value.key == "code_attempts_exceeded"

    def test_new_code_replaces_the_old_one(self):
        old = self.store.issue("mei@example.com", "update_email")
        self.clock.advance(seconds=1)
        new = self.store.issue("mei@example.com", "update_email")

        if old != new:
            with pytest.raises(ValidationError):
                self.store.verify("mei@example.com", "update_email", old)
        self.store.verify("mei@example.com", "update_email", new)
