"""
Timing-based insider trading detection and alerting.
"""

from .alerts import AlertDispatcher, AlertOutcome
from .detector import ScanResult, TimingDetector
from .ledger import DedupLedger, MonitorState

__all__ = [
    "AlertDispatcher",
    "AlertOutcome",
    "DedupLedger",
    "MonitorState",
    "ScanResult",
    "TimingDetector",
]
