"""
In-Memory OTP Storage
=====================
Process-local OTP storage for development and testing.
"""

import asyncio
import time
from dataclasses import replace
from typing import Callable, Dict, Optional, Tuple

from ..interfaces import OTPStorage
from ..models import OTPValue, StoredOTP


class InMemoryOTPStorage(OTPStorage):
    """
    Simple in-memory OTP storage.

    For development and testing only.
    Use RedisOTPStorage in production.
    """

    supports_mark_as_sent = True

    def __init__(self, clock: Optional[Callable[[], int]] = None):
        """
        Args:
            clock: Returns current epoch milliseconds (defaults to wall clock)
        """
        self._clock = clock or (lambda: int(time.time() * 1000))
        self._blocks: Dict[str, int] = {}
        self._records: Dict[Tuple[str, str], Tuple[StoredOTP, int]] = {}
        self._lock = asyncio.Lock()

    async def mark_requested(self, recipient_key: str, blocked_for_ms: int) -> int:
        async with self._lock:
            now = self._clock()
            self._cleanup(now)
            blocked_until = self._blocks.get(recipient_key)
            if blocked_until is not None and blocked_until > now:
                return blocked_until - now
            self._blocks[recipient_key] = now + blocked_for_ms
            return 0

    async def unmark_requested(self, recipient_key: str) -> None:
        async with self._lock:
            self._blocks.pop(recipient_key, None)

    async def store(self, otp: OTPValue, deletable_at_ms: int) -> None:
        record = StoredOTP(
            target=otp.target,
            value=otp.value,
            reference=otp.reference,
            expires_at_ms=otp.expires_at_ms,
            resend_allowed_at_ms=otp.resend_allowed_at_ms,
        )
        async with self._lock:
            self._cleanup(self._clock())
            self._records[(otp.reference, otp.value)] = (record, deletable_at_ms)

    async def fetch_and_used(self, reference: str, value: str) -> Optional[StoredOTP]:
        async with self._lock:
            entry = self._get_live((reference, value))
            if entry is None:
                return None
            entry.used += 1
            return replace(entry)

    async def mark_as_sent(self, reference: str, value: str, receipt_id: str) -> None:
        async with self._lock:
            entry = self._get_live((reference, value))
            if entry is not None:
                entry.receipt_id = receipt_id

    async def delete(self, reference: str, value: str) -> None:
        async with self._lock:
            self._records.pop((reference, value), None)

    def _get_live(self, key: Tuple[str, str]) -> Optional[StoredOTP]:
        """Return a record unless it is past its purge time."""
        entry = self._records.get(key)
        if entry is None:
            return None
        record, deletable_at_ms = entry
        if deletable_at_ms <= self._clock():
            del self._records[key]
            return None
        return record

    def _cleanup(self, now: int) -> None:
        """Remove expired blocks and purgeable records."""
        expired_blocks = [key for key, until in self._blocks.items() if until <= now]
        for key in expired_blocks:
            del self._blocks[key]

        expired_records = [
            key for key, (_, deletable_at_ms) in self._records.items()
            if deletable_at_ms <= now
        ]
        for key in expired_records:
            del self._records[key]
