"""
OTP Storage
===========
Bundled implementations of the OTP storage capability.
"""

from .in_memory import InMemoryOTPStorage
from .redis_storage import RedisOTPStorage, MARK_REQUESTED_SCRIPT, FETCH_AND_USED_SCRIPT, MARK_AS_SENT_SCRIPT

__all__ = [
    "InMemoryOTPStorage",
    "RedisOTPStorage",
    # Scripts
    "MARK_REQUESTED_SCRIPT",
    "FETCH_AND_USED_SCRIPT",
    "MARK_AS_SENT_SCRIPT",
]
