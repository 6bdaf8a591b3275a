"""
Process-wide monitoring state: the alert dedup ledger and monitoring epoch.
"""

import threading
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..models import AlertFingerprint
from .timing import utcnow


class DedupLedger:
    """
    Bounded, insertion-ordered set of alert fingerprints.

    When full, the oldest inserted fingerprint is evicted (FIFO). A fingerprint
    already present is never re-inserted, so its position is not refreshed.
    """

    def __init__(self, capacity: int = 5000):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self._entries: OrderedDict[AlertFingerprint, None] = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, fingerprint: AlertFingerprint) -> bool:
        return self.contains(fingerprint)

    def contains(self, fingerprint: AlertFingerprint) -> bool:
        with self._lock:
            return fingerprint in self._entries

    def record(self, fingerprint: AlertFingerprint) -> None:
        with self._lock:
            self._insert(fingerprint)

    def check_and_record(self, fingerprint: AlertFingerprint) -> bool:
        """Insert if absent. Returns False if the fingerprint was already recorded."""
        with self._lock:
            if fingerprint in self._entries:
                return False
            self._insert(fingerprint)
            return True

    def _insert(self, fingerprint: AlertFingerprint) -> None:
        if fingerprint in self._entries:
            return
        self._entries[fingerprint] = None
        while len(self._entries) > self.capacity:
            self._entries.popitem(last=False)


@dataclass
class MonitorStats:
    scans_completed: int = 0
    scans_skipped: int = 0
    markets_checked: int = 0
    alerts_sent: int = 0
    alerts_failed: int = 0
    last_scan_at: Optional[datetime] = None


class MonitorState:
    """
    Shared state owned by one tracker process.

    The epoch is fixed at construction; trades not strictly after it are
    never alerted on.
    """

    def __init__(self, capacity: int = 5000, epoch: Optional[datetime] = None):
        self.started_at = utcnow()
        self._epoch = epoch or self.started_at
        self.ledger = DedupLedger(capacity)
        self.stats = MonitorStats()

    @property
    def epoch(self) -> datetime:
        return self._epoch

    def is_after_epoch(self, trade_time: datetime) -> bool:
        return trade_time > self._epoch

    def uptime_seconds(self, now: Optional[datetime] = None) -> int:
        return int(((now or utcnow()) - self.started_at).total_seconds())
