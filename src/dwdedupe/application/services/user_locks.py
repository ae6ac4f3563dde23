"""Per-user asyncio locks so two syncs never race on the same record."""

import asyncio


# Hey future me - the sync engine has NO locking of its own. Anything that runs a sync
# (batch worker, POST /sync) grabs the user's lock here first. Locks are in-process only;
# run a single app instance or move this to the database if you ever scale out.
class UserLockRegistry:
    """Lazily created asyncio.Lock per user id."""

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}

    def lock_for(self, user_id: str) -> asyncio.Lock:
        lock = self._locks.get(user_id)
        if lock is None:
            lock = self._locks[user_id] = asyncio.Lock()
        return lock

    def is_locked(self, user_id: str) -> bool:
        lock = self._locks.get(user_id)
        return lock is not None and lock.locked()
