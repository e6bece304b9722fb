"""키(room_id)별 비동기 락.

같은 룸에 대한 변경(입장/퇴장/업로드/정리)을 한 번에 하나씩만 실행하기 위한
single-writer 경계입니다. 서로 다른 룸은 서로를 기다리지 않습니다.

Examples:
    >>> locks = KeyedLock()
    >>> async with locks.hold("42"):
    ...     ...  # room "42" 상태 변경
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict


class KeyedLock:
    """키마다 하나의 asyncio.Lock 을 지연 생성하고, 대기자가 없으면 제거합니다."""

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}
        self._holders: Dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        self._holders[key] = self._holders.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._holders[key] -= 1
            if self._holders[key] == 0:
                del self._holders[key]
                self._locks.pop(key, None)

    def locked(self, key: str) -> bool:
        """해당 키의 락이 현재 점유 중인지 여부."""
        lock = self._locks.get(key)
        return lock is not None and lock.locked()

    def __len__(self) -> int:
        return len(self._locks)
