"""
Redis OTP Storage
=================
Redis-backed OTP storage using Lua scripts for atomic operations.
"""

import time
from typing import Any, Dict, List, Optional

import redis.asyncio as aioredis
import structlog
from redis.exceptions import NoScriptError

from ..config import Settings
from ..interfaces import OTPStorage
from ..models import OTPTarget, OTPValue, StoredOTP, TargetType

logger = structlog.get_logger(__name__)

# Lua script for the atomic recipient block
MARK_REQUESTED_SCRIPT = """
local key = KEYS[1]
local ttl_ms = tonumber(ARGV[1])

local count = redis.call('INCR', key)

if count == 1 then
    redis.call('PEXPIRE', key, ttl_ms)
    return 0
end

local remaining_ttl = redis.call('PTTL', key)
if remaining_ttl <= 0 then
    -- Key exists without TTL, reset it
    redis.call('SET', key, '1', 'PX', ttl_ms)
    return 0
end

return remaining_ttl
"""

# Lua script for atomic read + use increment; never creates a missing record
FETCH_AND_USED_SCRIPT = """
local key = KEYS[1]

if redis.call('EXISTS', key) == 0 then
    return nil
end

redis.call('HINCRBY', key, 'used', 1)
return redis.call('HGETALL', key)
"""

# Lua script for recording the delivery receipt; a purged record stays purged
MARK_AS_SENT_SCRIPT = """
local key = KEYS[1]

if redis.call('EXISTS', key) == 0 then
    return 0
end

redis.call('HSET', key, 'receipt_id', ARGV[1])
return 1
"""


def _decode(value: Any) -> str:
    return value.decode("utf-8") if isinstance(value, bytes) else str(value)


class RedisOTPStorage(OTPStorage):
    """
    Redis-backed OTP storage.

    Records live under ``{prefix}:{reference}:{value}`` so a lookup only
    succeeds for the exact pair that was stored.
    """

    supports_mark_as_sent = True

    def __init__(self, redis_client, key_prefix: str = "totem-otp"):
        """
        Args:
            redis_client: Async Redis client (redis.asyncio)
            key_prefix: Prefix for every key written
        """
        self.redis = redis_client
        self.key_prefix = key_prefix
        self._script_shas: Dict[str, str] = {}

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "RedisOTPStorage":
        """Connect to ``settings.redis_url`` and use ``settings.key_prefix``."""
        settings = settings or Settings()
        return cls(aioredis.from_url(settings.redis_url), key_prefix=settings.key_prefix)

    async def _run_script(self, script: str, keys: List[str], args: List[Any]) -> Any:
        """Run a Lua script by SHA, loading it into Redis if needed."""
        sha = self._script_shas.get(script)
        if sha is None:
            sha = await self.redis.script_load(script)
            self._script_shas[script] = sha
        try:
            return await self.redis.evalsha(sha, len(keys), *keys, *args)
        except NoScriptError:
            # Script cache flushed (e.g. Redis restart)
            logger.warning("Lua script missing from Redis, reloading")
            self._script_shas[script] = await self.redis.script_load(script)
            return await self.redis.evalsha(self._script_shas[script], len(keys), *keys, *args)

    async def mark_requested(self, recipient_key: str, blocked_for_ms: int) -> int:
        result = await self._run_script(
            MARK_REQUESTED_SCRIPT,
            [self.get_block_key(recipient_key)],
            [blocked_for_ms],
        )
        return int(result)

    async def unmark_requested(self, recipient_key: str) -> None:
        await self.redis.delete(self.get_block_key(recipient_key))

    async def store(self, otp: OTPValue, deletable_at_ms: int) -> None:
        key = self.get_record_key(otp.reference, otp.value)
        mapping = {
            "target_type": otp.target.type.value,
            "target_value": otp.target.value,
            "target_unique_id": otp.target.recipient_key,
            "reference": otp.reference,
            "otp_value": otp.value,
            "expires_at_ms": str(otp.expires_at_ms),
            "resend_allowed_at_ms": str(otp.resend_allowed_at_ms),
            "used": "0",
            "created_at": str(int(time.time() * 1000)),
        }

        pipe = self.redis.pipeline(transaction=True)
        pipe.hset(key, mapping=mapping)
        pipe.pexpireat(key, deletable_at_ms)
        await pipe.execute()

    async def fetch_and_used(self, reference: str, value: str) -> Optional[StoredOTP]:
        raw = await self._run_script(
            FETCH_AND_USED_SCRIPT,
            [self.get_record_key(reference, value)],
            [],
        )
        if not raw:
            return None

        flat = [_decode(item) for item in raw]
        data = dict(zip(flat[0::2], flat[1::2]))
        return self._parse_record(reference, data)

    async def mark_as_sent(self, reference: str, value: str, receipt_id: str) -> None:
        updated = await self._run_script(
            MARK_AS_SENT_SCRIPT,
            [self.get_record_key(reference, value)],
            [receipt_id],
        )
        if not int(updated):
            logger.warning("Receipt id not recorded, OTP record already purged", reference=reference)

    async def delete(self, reference: str, value: str) -> None:
        """Delete an OTP record (cleanup)."""
        await self.redis.delete(self.get_record_key(reference, value))

    def get_record_key(self, reference: str, value: str) -> str:
        return f"{self.key_prefix}:{reference}:{value}"

    def get_block_key(self, recipient_key: str) -> str:
        return f"{self.key_prefix}:block:{recipient_key}"

    def _parse_record(self, reference: str, data: Dict[str, str]) -> StoredOTP:
        target_type = TargetType(data["target_type"])
        target_value = data["target_value"]
        unique_id = data.get("target_unique_id")
        if unique_id == f"{target_type.value}|{target_value}":
            unique_id = None

        return StoredOTP(
            target=OTPTarget(type=target_type, value=target_value, unique_identifier=unique_id),
            value=data["otp_value"],
            reference=reference,
            expires_at_ms=int(data["expires_at_ms"]),
            resend_allowed_at_ms=int(data["resend_allowed_at_ms"]),
            used=int(data["used"]),
            receipt_id=data.get("receipt_id") or None,
        )
