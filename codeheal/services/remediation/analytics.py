"""
Fix Analytics - append-only efficacy records

category x strategy x outcome x duration, kept in a bounded in-memory
buffer. Reporting on top of the records is left to callers.
"""

import threading
import time
from collections import deque
from typing import Deque, Optional, Tuple

from codeheal.core.config import settings
from codeheal.services.remediation.models import AnalyticsRecord, ErrorCategory, FixStrategy


class FixAnalytics:
    """Bounded, thread-safe record buffer (oldest records dropped first)"""

    def __init__(self, max_records: Optional[int] = None):
        self.max_records = settings.AUTOFIX_ANALYTICS_MAX_RECORDS if max_records is None else max_records
        self._lock = threading.Lock()
        self._records: Deque[AnalyticsRecord] = deque(maxlen=self.max_records)

    def record(
        self,
        fingerprint: str,
        category: ErrorCategory,
        strategy: Optional[FixStrategy],
        success: bool,
        duration_ms: int
    ) -> AnalyticsRecord:
        entry = AnalyticsRecord(
            fingerprint=fingerprint,
            category=category,
            strategy=strategy,
            success=success,
            duration_ms=int(duration_ms),
            timestamp=time.time(),
        )
        with self._lock:
            self._records.append(entry)
        return entry

    def records(self) -> Tuple[AnalyticsRecord, ...]:
        """Immutable snapshot, oldest first"""
        with self._lock:
            return tuple(self._records)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def clear(self) -> None:
        with self._lock:
            self._records.clear()


# Process-wide default instance
fix_analytics = FixAnalytics()
