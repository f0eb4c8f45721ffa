"""
One-time login codes.

An `OtpStore` is owned by the application instance (`app.state.otp_store`)
and handed to the auth router as a dependency. Codes expire after
`ttl_seconds` and are consumed by the first successful verification. A
code is also discarded after `max_attempts` wrong guesses, so the account
has to request a new one.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
import os
import secrets
import threading
import time
from typing import Callable, Dict, Optional, Tuple

from .models import AccountRole

OTP_TTL_SECONDS = int(os.getenv("OTP_TTL_SECONDS", "300"))
OTP_LENGTH = int(os.getenv("OTP_LENGTH", "6"))
OTP_MAX_ATTEMPTS = int(os.getenv("OTP_MAX_ATTEMPTS", "5"))


@dataclass(frozen=True)
class OtpEntry:
    code: str
    role: AccountRole
    account_id: int
    expires_at: float
    failed_attempts: int = 0


class OtpStore:
    def __init__(
        self,
        *,
        ttl_seconds: int = OTP_TTL_SECONDS,
        length: int = OTP_LENGTH,
        max_attempts: int = OTP_MAX_ATTEMPTS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self.length = length
        self.max_attempts = max_attempts
        self._clock = clock
        self._entries: Dict[Tuple[AccountRole, str], OtpEntry] = {}
        self._lock = threading.Lock()

    @staticmethod
    def _key(role: AccountRole, email: str) -> Tuple[AccountRole, str]:
        return AccountRole(role), email.strip().lower()

    def _generate(self) -> str:
        return "".join(secrets.choice("0123456789") for _ in range(self.length))

    def issue(self, *, role: AccountRole, email: str, account_id: int) -> str:
        """Create a fresh code for the account, replacing any outstanding one."""
        code = self._generate()
        entry = OtpEntry(
            code=code,
            role=AccountRole(role),
            account_id=account_id,
            expires_at=self._clock() + self.ttl_seconds,
        )
        with self._lock:
            self._entries[self._key(role, email)] = entry
        return code

    def verify(self, *, role: AccountRole, email: str, code: str) -> Optional[OtpEntry]:
        """
        Return the entry when `code` matches an unexpired one, consuming it.

        Expired entries are dropped on sight. A wrong code counts against the
        entry, which is dropped once `max_attempts` guesses have failed.
        """
        key = self._key(role, email)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.expires_at <= self._clock():
                del self._entries[key]
                return None
            if not secrets.compare_digest(entry.code, (code or "").strip()):
                failed = entry.failed_attempts + 1
                if failed >= self.max_attempts:
                    del self._entries[key]
                else:
                    self._entries[key] = replace(entry, failed_attempts=failed)
                return None
            del self._entries[key]
            return entry

    def purge(self) -> int:
        """Drop expired entries; returns how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [key for key, entry in self._entries.items() if entry.expires_at <= now]
            for key in expired:
                del self._entries[key]
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
