"""
Attempt Ledger - per-fingerprint attempt history and circuit breaker

In-memory, process-wide. Errors that keep failing inside the failure window
are skipped so hopeless errors stop costing AI spend; the breaker closes on
its own once the window has passed.
"""

import asyncio
import hashlib
import re
import threading
import time
from collections import defaultdict
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Dict, List, Optional

from codeheal.core.config import settings
from codeheal.core.logging_config import logger
from codeheal.services.remediation.models import AttemptRecord, FixStrategy


_MODULE_SPECIFIER = re.compile(
    r"(?:specifier|Cannot find module|Failed to resolve import|Can't resolve)\s+['\"]([^'\"]+)['\"]"
)


def fingerprint(message: str, stack: str = "") -> str:
    """
    Stable key for "the same error".

    Normalizes volatile parts so repeats of one error share a key:
    - Line and column numbers
    - Timestamps
    - UUIDs
    - URLs and absolute paths

    Module specifiers named by resolution errors are kept verbatim, so
    "src/ui/Button" and "src/components/Button" stay different errors.
    """
    normalized = f"{message or ''}\n{stack or ''}"
    specifiers = _MODULE_SPECIFIER.findall(normalized)

    # Remove URLs (dev-server origins, cache busters)
    normalized = re.sub(r'https?://[^\s)\'"]+', 'URL', normalized)

    # Remove timestamps
    normalized = re.sub(r'\d{4}-\d{2}-\d{2}[T ]\d{2}:\d{2}:\d{2}(?:\.\d+)?Z?', 'TIMESTAMP', normalized)

    # Remove line numbers
    normalized = re.sub(r'line \d+', 'line X', normalized, flags=re.I)
    normalized = re.sub(r':\d+:\d+', ':X:X', normalized)
    normalized = re.sub(r':\d+\b', ':X', normalized)

    # Remove UUIDs
    normalized = re.sub(
        r'[a-f0-9]{8}-[a-f0-9]{4}-[a-f0-9]{4}-[a-f0-9]{4}-[a-f0-9]{12}', 'UUID', normalized, flags=re.I
    )

    # Remove absolute paths but keep relative structure
    normalized = re.sub(r'(?<![\w.])(?:/[a-zA-Z0-9_\-.@]+)+/', '/PATH/', normalized)
    normalized = re.sub(r'\bnode_modules/(?:[a-zA-Z0-9_\-.@]+/)+', 'node_modules/PATH/', normalized)
    normalized = re.sub(r'[A-Z]:\\[^:]+\\', 'PATH\\\\', normalized)

    if specifiers:
        normalized += "\nmodules: " + " ".join(specifiers)

    return hashlib.md5(normalized.strip().encode()).hexdigest()


@dataclass(frozen=True)
class SkipDecision:
    """Circuit breaker verdict for one fingerprint"""
    skip: bool
    reason: Optional[str] = None


class AttemptLedger:
    """
    Thread-safe attempt history keyed by error fingerprint.

    Features:
    - Circuit breaker: skip after N failures inside the failure window
      when the fingerprint never succeeded
    - TTL pruning of old records
    - Per-fingerprint async exclusion for concurrent fix() calls
    """

    def __init__(
        self,
        skip_after_failures: Optional[int] = None,
        failure_window_seconds: Optional[float] = None,
        ttl_seconds: Optional[float] = None,
        clock=time.time
    ):
        self.skip_after_failures = (
            settings.AUTOFIX_SKIP_AFTER_FAILURES if skip_after_failures is None else skip_after_failures
        )
        self.failure_window_seconds = (
            settings.AUTOFIX_FAILURE_WINDOW_SECONDS if failure_window_seconds is None else failure_window_seconds
        )
        self.ttl_seconds = settings.AUTOFIX_HISTORY_TTL_SECONDS if ttl_seconds is None else ttl_seconds
        self._clock = clock

        self._lock = threading.Lock()
        self._records: Dict[str, List[AttemptRecord]] = defaultdict(list)

        # Async exclusion (event-loop side)
        self._fingerprint_locks: Dict[str, asyncio.Lock] = {}
        self._lock_users: Dict[str, int] = {}

    def record_attempt(self, fingerprint: str, strategy: Optional[FixStrategy], success: bool) -> AttemptRecord:
        record = AttemptRecord(
            fingerprint=fingerprint,
            strategy=strategy,
            success=success,
            timestamp=self._clock(),
        )
        with self._lock:
            self._records[fingerprint].append(record)
            self._prune_locked(record.timestamp)
        return record

    def should_skip(self, fingerprint: str) -> SkipDecision:
        """
        Returns SkipDecision(skip=True) when the fingerprint has at least
        `skip_after_failures` failures inside the window and never succeeded.
        """
        now = self._clock()
        with self._lock:
            self._prune_locked(now)
            records = list(self._records.get(fingerprint, ()))

        if not records:
            return SkipDecision(skip=False)
        if any(r.success for r in records):
            return SkipDecision(skip=False)

        recent_failures = [r for r in records if now - r.timestamp <= self.failure_window_seconds]
        if len(recent_failures) >= self.skip_after_failures:
            minutes = max(1, int(self.failure_window_seconds // 60))
            return SkipDecision(
                skip=True,
                reason=f"Failed {len(recent_failures)} times in the last {minutes} minutes",
            )
        return SkipDecision(skip=False)

    def history(self, fingerprint: str) -> List[AttemptRecord]:
        with self._lock:
            return list(self._records.get(fingerprint, ()))

    def reset(self, fingerprint: str) -> None:
        """Forget one fingerprint (e.g. after the user edited the file by hand)"""
        with self._lock:
            self._records.pop(fingerprint, None)

    def clear(self) -> None:
        with self._lock:
            self._records.clear()

    @asynccontextmanager
    async def exclusive(self, fingerprint: str) -> AsyncIterator[None]:
        """Serialize fix() calls for one fingerprint; others interleave freely"""
        lock = self._fingerprint_locks.get(fingerprint)
        if lock is None:
            lock = self._fingerprint_locks[fingerprint] = asyncio.Lock()
        self._lock_users[fingerprint] = self._lock_users.get(fingerprint, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[fingerprint] -= 1
            if self._lock_users[fingerprint] == 0:
                del self._lock_users[fingerprint]
                self._fingerprint_locks.pop(fingerprint, None)

    def _prune_locked(self, now: float) -> None:
        cutoff = now - self.ttl_seconds
        expired = []
        for key, records in self._records.items():
            kept = [r for r in records if r.timestamp >= cutoff]
            if kept:
                self._records[key] = kept
            else:
                expired.append(key)
        for key in expired:
            del self._records[key]
        if expired:
            logger.debug(f"[AttemptLedger] Pruned {len(expired)} expired fingerprint(s)")


# Process-wide default instance
attempt_ledger = AttemptLedger()
