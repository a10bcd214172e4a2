"""Sliding-window rate limiter with a persisted timestamp ledger"""
import json
import logging
import math
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional, Protocol

from ..config import settings

logger = logging.getLogger(__name__)

AI_PURPOSE = "ai"
AUTH_PURPOSE = "auth"


def _now_ms() -> int:
    return int(time.time() * 1000)


class LedgerStore(Protocol):
    """Durable key/value store for admission timestamps"""

    def load(self, key: str) -> List[int]:
        ...

    def save(self, key: str, timestamps: List[int]) -> None:
        ...


class InMemoryLedgerStore:
    """Process-local ledger store, used in tests and single-shot scripts"""

    def __init__(self):
        self.data: Dict[str, List[int]] = {}

    def load(self, key: str) -> List[int]:
        return list(self.data.get(key, []))

    def save(self, key: str, timestamps: List[int]) -> None:
        self.data[key] = list(timestamps)


class FileLedgerStore:
    """
    One JSON file per ledger key under a directory.

    Two processes sharing the directory race on check-then-append, so the
    limiter built on top is a soft usage cap and not a security boundary.
    """

    def __init__(self, directory: str):
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def load(self, key: str) -> List[int]:
        path = self._path(key)
        if not path.exists():
            return []
        try:
            data = json.loads(path.read_text())
        except (OSError, ValueError) as e:
            logger.warning(f"Unreadable rate-limit ledger {path}, starting empty: {e}")
            return []
        if not isinstance(data, list) or not all(isinstance(t, (int, float)) for t in data):
            logger.warning(f"Malformed rate-limit ledger {path}, starting empty")
            return []
        return [int(t) for t in data]

    def save(self, key: str, timestamps: List[int]) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        self._path(key).write_text(json.dumps(timestamps))


class RateLimiter:
    """
    Sliding-window limiter for one purpose.

    Keeps the admission timestamps (epoch ms) of the trailing window and
    persists them after every mutation so the quota survives restarts.
    Exceeding the quota is a boolean signal, never an exception.
    """

    def __init__(
        self,
        purpose: str,
        limit: int,
        window_ms: int,
        store: LedgerStore,
        clock: Optional[Callable[[], int]] = None
    ):
        """
        Initialize limiter and reload its ledger from the store.

        Args:
            purpose: Quota bucket name ("ai" or "auth")
            limit: Max admissions per window
            window_ms: Window size in milliseconds
            store: Durable ledger store
            clock: Returns current epoch milliseconds (default: wall clock)
        """
        self.purpose = purpose
        self.limit = limit
        self.window_ms = window_ms
        self.store = store
        self.clock = clock or _now_ms
        self.storage_key = f"kanso_rl_{purpose}"
        self.timestamps: List[int] = self.store.load(self.storage_key)

    def _save(self) -> None:
        self.store.save(self.storage_key, self.timestamps)

    def check(self) -> bool:
        """
        Admit or reject one action.

        Returns:
            True if admitted (timestamp recorded), False if the quota is used up
        """
        now = self.clock()
        pruned = [t for t in self.timestamps if now - t < self.window_ms]
        if len(pruned) != len(self.timestamps):
            self.timestamps = pruned
            self._save()

        if len(self.timestamps) >= self.limit:
            logger.warning(
                f"Rate limit reached for '{self.purpose}' "
                f"({self.limit} per {self.window_ms // 1000}s), reset in {self.time_to_reset()}s"
            )
            return False

        self.timestamps.append(now)
        self._save()
        return True

    def time_to_reset(self) -> int:
        """Seconds until the next action would be admitted (0 if a slot is free)"""
        if len(self.timestamps) < self.limit:
            return 0
        oldest = min(self.timestamps)
        remaining_ms = oldest + self.window_ms - self.clock()
        return max(0, math.ceil(remaining_ms / 1000))

    def reset(self) -> None:
        self.timestamps = []
        self._save()


@dataclass
class GovernanceContext:
    """Process-wide limiters, passed explicitly to whoever needs a gate"""
    ai: RateLimiter
    auth: RateLimiter

    @classmethod
    def from_settings(
        cls,
        store: Optional[LedgerStore] = None,
        clock: Optional[Callable[[], int]] = None
    ) -> "GovernanceContext":
        store = store if store is not None else FileLedgerStore(settings.rate_limit_store_dir)
        return cls(
            ai=RateLimiter(AI_PURPOSE, settings.ai_requests_limit, settings.ai_window_ms, store, clock),
            auth=RateLimiter(AUTH_PURPOSE, settings.auth_attempts_limit, settings.auth_window_ms, store, clock),
        )

    def limiter(self, purpose: str) -> RateLimiter:
        if purpose == AI_PURPOSE:
            return self.ai
        if purpose == AUTH_PURPOSE:
            return self.auth
        raise KeyError(f"Unknown rate-limit purpose: {purpose}")

    def check(self, purpose: str) -> bool:
        return self.limiter(purpose).check()

    def time_to_reset(self, purpose: str) -> int:
        return self.limiter(purpose).time_to_reset()
