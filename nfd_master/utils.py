import asyncio
from collections import Counter
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Dict

from .version import get_version


def print_banner(service_name: str, version: str = ""):
    """
    Print the startup banner.

    Args:
        service_name: Name of the service starting up (e.g., "NFD-Master")
        version: Version number of the service (default: the package version)
    """
    version = version or get_version()

    print("=" * 80)
    print(f"  Node Feature Discovery - {service_name}")
    print("=" * 80)
    print(f"  Version:        {version}")
    print(f"  Started:        {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print("-" * 80)
    print(f"  Description:    Publishes node features reported by workers as node")
    print(f"                  labels, extended resources and topology records")
    print("=" * 80)
    print()


class KeyedLock:
    """
    One asyncio.Lock per key, created on demand and dropped once no task
    holds or waits for it.
    """

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}
        self._users: Counter = Counter()

    @asynccontextmanager
    async def __call__(self, key: str):
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._users[key] += 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if not self._users[key]:
                del self._users[key]
                del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)
