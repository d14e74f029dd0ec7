"""
Redis lock for the scheduled refund sweeps.

Celery beat can fire a sweep while the previous run is still going (slow
provider calls, many expired decisions). Each sweep takes a named lock
first; a second run that finds the lock held skips instead of queueing
behind it.

Usage:
    from refunds.exceptions import LockAcquisitionError
    from refunds.locks import sweep_lock

    try:
        with sweep_lock("refunds:expiry-sweep", ttl=600):
            ExpiryService.auto_process_expired()
    except LockAcquisitionError:
        return {"status": "skipped", "reason": "already_running"}

Note:
    Row-level safety never depends on this lock: decisions are claimed
    with select_for_update and an FSM status check. The lock only keeps
    two sweeps from doing the same work twice.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterator
from contextlib import contextmanager

from django_redis import get_redis_connection

from refunds.exceptions import LockAcquisitionError

# Delete the key only if it still holds our token
RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
else
    return 0
end
"""


@contextmanager
def sweep_lock(name: str, ttl: int) -> Iterator[str]:
    """
    Hold ``lock:<name>`` for the duration of the block.

    The key expires after ``ttl`` seconds even if the worker dies, so the
    TTL should be longer than the expected sweep duration.

    Raises:
        LockAcquisitionError: Another run holds the lock
    """
    key = f"lock:{name}"
    token = str(uuid.uuid4())
    redis = get_redis_connection("default")

    if not redis.set(key, token, nx=True, ex=ttl):
        raise LockAcquisitionError(
            f"Lock '{key}' is already held",
            details={"key": key},
        )

    try:
        yield token
    finally:
        redis.eval(RELEASE_SCRIPT, 1, key, token)


__all__ = ["sweep_lock"]
