"""
Admin gate.

A single shared password unlocks admin actions. A successful login issues
a signed session token (HS256 JWT) that expires after
SESSION_MAX_AGE_SECONDS; the API carries it in an httpOnly cookie.
"""

import hmac
import logging
import threading
import time
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Tuple

import jwt
from cachetools import TTLCache

from .. import config
from .exceptions import Unauthorized

logger = logging.getLogger(__name__)

SESSION_SUBJECT = "admin"


class AdminGate:
    """Issues and verifies admin session tokens."""

    def __init__(
        self,
        password: str = config.ADMIN_PASSWORD,
        secret: str = config.SESSION_SECRET,
        max_age_seconds: int = config.SESSION_MAX_AGE_SECONDS,
    ):
        if not password:
            raise ValueError("Admin password must not be empty")
        self._password = password
        self._secret = secret or password
        self.max_age_seconds = max_age_seconds

    def check_password(self, password: Optional[str]) -> bool:
        """Constant-time comparison against the shared password."""
        if not isinstance(password, str):
            return False
        return hmac.compare_digest(password.encode(), self._password.encode())

    def login(self, password: Optional[str]) -> str:
        """Exchange the shared password for a session token.

        Raises:
            Unauthorized: If the password does not match
        """
        if not self.check_password(password):
            raise Unauthorized("Invalid password")

        now = datetime.now(timezone.utc)
        payload = {
            "sub": SESSION_SUBJECT,
            "iat": now,
            "exp": now + timedelta(seconds=self.max_age_seconds),
        }
        return jwt.encode(payload, self._secret, algorithm="HS256")

    def is_authorized(self, credential: Optional[str]) -> bool:
        """True if the credential is an unexpired token signed by this gate."""
        if not credential:
            return False
        try:
            payload = jwt.decode(credential, self._secret, algorithms=["HS256"])
        except jwt.ExpiredSignatureError:
            logger.info("Rejected expired admin session")
            return False
        except jwt.InvalidTokenError:
            return False
        return payload.get("sub") == SESSION_SUBJECT

    def require(self, credential: Optional[str]) -> None:
        """Raise Unauthorized unless the credential is valid."""
        if not self.is_authorized(credential):
            raise Unauthorized()


class LoginRateLimiter:
    """Limits failed logins per client.

    Each client may fail ``max_attempts`` times; the counter expires
    ``cooldown_seconds`` after the most recent failure.
    """

    def __init__(
        self,
        max_attempts: int = config.LOGIN_MAX_ATTEMPTS,
        cooldown_seconds: int = config.LOGIN_COOLDOWN_SECONDS,
        timer: Callable[[], float] = time.monotonic,
    ):
        self.max_attempts = max_attempts
        self.cooldown_seconds = cooldown_seconds
        self._timer = timer
        # client -> (failures, time of last failure)
        self._failures: TTLCache = TTLCache(maxsize=10000, ttl=cooldown_seconds, timer=timer)
        self._lock = threading.Lock()

    def check(self, client: str) -> Tuple[bool, int]:
        """
        Check whether a client may attempt a login.

        Returns:
            Tuple of (allowed: bool, wait_seconds: int)
        """
        with self._lock:
            failures, last_failure = self._failures.get(client, (0, 0.0))
            if failures < self.max_attempts:
                return True, 0
            elapsed = self._timer() - last_failure
            return False, max(1, int(self.cooldown_seconds - elapsed))

    def record_failure(self, client: str) -> None:
        with self._lock:
            failures, _ = self._failures.get(client, (0, 0.0))
            self._failures[client] = (failures + 1, self._timer())

    def reset(self, client: Optional[str] = None) -> None:
        """Forget one client's failures, or everyone's."""
        with self._lock:
            if client is None:
                self._failures.clear()
            else:
                self._failures.pop(client, None)
