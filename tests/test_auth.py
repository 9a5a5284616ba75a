"""Tests for the admin gate and login rate limiter."""

import threading

import jwt
import pytest

from leaderboard.services import AdminGate, LoginRateLimiter, Unauthorized

PASSWORD = "correct horse"
SECRET = "signing-secret"


class FakeTimer:
    """Manually advanced monotonic clock."""

    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class TestAdminGate:
    """Tests for AdminGate."""

    def test_check_password(self):
        gate = AdminGate(password=PASSWORD, secret=SECRET)

        assert gate.check_password(PASSWORD) is True
        assert gate.check_password("wrong") is False
        assert gate.check_password(None) is False

    def test_login_returns_valid_token(self):
        gate = AdminGate(password=PASSWORD, secret=SECRET)

        token = gate.login(PASSWORD)

        assert gate.is_authorized(token) is True
        assert jwt.decode(token, SECRET, algorithms=["HS256"])["sub"] == "admin"

    def test_login_wrong_password_raises(self):
        gate = AdminGate(password=PASSWORD, secret=SECRET)

        with pytest.raises(Unauthorized):
            gate.login("nope")

    def test_missing_credential_is_rejected(self):
        gate = AdminGate(password=PASSWORD, secret=SECRET)

        assert gate.is_authorized(None) is False
        assert gate.is_authorized("") is False

    def test_garbage_token_is_rejected(self):
        gate = AdminGate(password=PASSWORD, secret=SECRET)

        assert gate.is_authorized("not-a-token") is False

    def test_token_from_other_secret_is_rejected(self):
        other = AdminGate(password=PASSWORD, secret="different")
        gate = AdminGate(password=PASSWORD, secret=SECRET)

        assert gate.is_authorized(other.login(PASSWORD)) is False

    def test_expired_token_is_rejected(self):
        gate = AdminGate(password=PASSWORD, secret=SECRET, max_age_seconds=-10)

        assert gate.is_authorized(gate.login(PASSWORD)) is False

    def test_require(self):
        gate = AdminGate(password=PASSWORD, secret=SECRET)

        gate.require(gate.login(PASSWORD))
        with pytest.raises(Unauthorized):
            gate.require(None)

    def test_empty_password_not_allowed(self):
        with pytest.raises(ValueError):
            AdminGate(password="")


class TestLoginRateLimiter:
    """Tests for LoginRateLimiter functionality."""

    def test_first_attempt_allowed(self):
        limiter = LoginRateLimiter(max_attempts=3, cooldown_seconds=60)

        allowed, wait_seconds = limiter.check("1.2.3.4")

        assert allowed is True
        assert wait_seconds == 0

    def test_blocked_after_max_failures(self):
        timer = FakeTimer()
        limiter = LoginRateLimiter(max_attempts=3, cooldown_seconds=60, timer=timer)

        for _ in range(3):
            limiter.record_failure("1.2.3.4")
        timer.now += 10
        allowed, wait_seconds = limiter.check("1.2.3.4")

        assert allowed is False
        assert wait_seconds == 50

    def test_clients_are_independent(self):
        limiter = LoginRateLimiter(max_attempts=1, cooldown_seconds=60)

        limiter.record_failure("a")

        assert limiter.check("a")[0] is False
        assert limiter.check("b")[0] is True

    def test_allowed_again_after_cooldown(self):
        timer = FakeTimer()
        limiter = LoginRateLimiter(max_attempts=2, cooldown_seconds=60, timer=timer)
        limiter.record_failure("a")
        limiter.record_failure("a")

        timer.now += 61

        assert limiter.check("a") == (True, 0)

    def test_reset_single_client(self):
        limiter = LoginRateLimiter(max_attempts=1, cooldown_seconds=60)
        limiter.record_failure("a")
        limiter.record_failure("b")

        limiter.reset("a")

        assert limiter.check("a")[0] is True
        assert limiter.check("b")[0] is False

    def test_reset_all(self):
        limiter = LoginRateLimiter(max_attempts=1, cooldown_seconds=60)
        limiter.record_failure("a")
        limiter.record_failure("b")

        limiter.reset()

        assert limiter.check("a")[0] is True
        assert limiter.check("b")[0] is True

    def test_thread_safety(self):
        """Concurrent failures are all counted."""
        limiter = LoginRateLimiter(max_attempts=50, cooldown_seconds=60)

        threads = [threading.Thread(target=limiter.record_failure, args=("a",)) for _ in range(50)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert limiter.check("a")[0] is False
