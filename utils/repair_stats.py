"""Process-lifetime counters for path resolution and repair."""

import threading
from typing import Dict, Optional


class RepairStatistics:
    """Monotonic counters, safe to increment from any thread

    ``total_checked`` grows once per resolution attempt and ``total_fixed`` once per
    resolution that repaired a path. Counters reset only on process restart.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._checked = 0
        self._fixed = 0
        self._cycles = 0
        self._last_cycle: Optional[Dict[str, float]] = None

    @property
    def total_checked(self) -> int:
        with self._lock:
            return self._checked

    @property
    def total_fixed(self) -> int:
        with self._lock:
            return self._fixed

    @property
    def cycles_completed(self) -> int:
        with self._lock:
            return self._cycles

    @property
    def last_cycle(self) -> Optional[Dict[str, float]]:
        with self._lock:
            return dict(self._last_cycle) if self._last_cycle else None

    def record_checked(self) -> None:
        with self._lock:
            self._checked += 1

    def record_fixed(self) -> None:
        with self._lock:
            self._fixed += 1

    def record_cycle(self, checked: int, fixed: int, duration: float) -> None:
        with self._lock:
            self._cycles += 1
            self._last_cycle = {"checked": checked, "fixed": fixed, "duration": duration}

    def snapshot(self) -> Dict[str, float]:
        with self._lock:
            checked, fixed = self._checked, self._fixed
        ratio = (fixed * 100.0 / checked) if checked > 0 else 0.0
        return {"checked": checked, "fixed": fixed, "ratio": ratio}

    def format(self) -> str:
        stats = self.snapshot()
        return (f"Path Resolution Stats: Checked={stats['checked']}, "
                f"Fixed={stats['fixed']}, Ratio={stats['ratio']:.2f}%")
