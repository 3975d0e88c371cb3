"""
Performance monitoring for import and export jobs.

Tracks how long each pipeline stage took, how many rows passed or failed
the transform stage, and the resident memory of the process. Memory is read
with psutil whenever a stage ends; the summary returned by stop_monitoring
becomes ImportResult.metrics.
"""

import time
import logging
import psutil
from typing import Dict, Any, Optional
from dataclasses import dataclass, field

from ..interfaces import PerformanceMonitorInterface

_MB = 1024 * 1024


@dataclass
class JobMetrics:
    """Counters and timings of one job run."""
    started: Optional[float] = None
    finished: Optional[float] = None
    rows_processed: int = 0
    rows_valid: int = 0
    rows_invalid: int = 0

    # Seconds spent per stage, in first-seen order; repeated stages accumulate
    stage_timings: Dict[str, float] = field(default_factory=dict)

    start_memory_mb: float = 0.0
    peak_memory_mb: float = 0.0

    custom: Dict[str, Any] = field(default_factory=dict)

    @property
    def elapsed(self) -> float:
        if self.started is None or self.finished is None:
            return 0.0
        return self.finished - self.started


class PerformanceMonitor(PerformanceMonitorInterface):
    """
    Collects timings and resource usage for a single job run.

    A monitor is started at the beginning of exec and stopped once the job
    finishes, successfully or not. Starting it again resets every counter.
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self._metrics = JobMetrics()
        self._running = False
        self._process = psutil.Process()
        self._open_stages: Dict[str, float] = {}

    @property
    def is_monitoring(self) -> bool:
        return self._running

    def start_monitoring(self) -> None:
        if self._running:
            self.logger.warning("Monitor is already running; ignoring start")
            return

        self._metrics = JobMetrics(started=time.perf_counter())
        self._metrics.start_memory_mb = self._sample_memory()
        self._open_stages = {}
        self._running = True

    def stop_monitoring(self) -> Dict[str, Any]:
        """Stop the run and return its summary; {} when the monitor never started."""
        if not self._running:
            self.logger.warning("Monitor stopped without being started")
            return {}

        self._sample_memory()
        self._metrics.finished = time.perf_counter()
        self._running = False

        metrics = self._metrics
        self.logger.info(f"{metrics.rows_processed} rows in {metrics.elapsed:.2f}s "
                         f"({metrics.rows_invalid} invalid, peak memory {metrics.peak_memory_mb:.1f} MB)")
        return self.get_current_metrics()

    def get_current_metrics(self) -> Dict[str, Any]:
        """Summary of the current (or last finished) run."""
        metrics = self._metrics
        elapsed = metrics.elapsed
        return {
            'elapsed_seconds': elapsed,
            'rows_processed': metrics.rows_processed,
            'rows_valid': metrics.rows_valid,
            'rows_invalid': metrics.rows_invalid,
            'rows_per_second': metrics.rows_processed / elapsed if elapsed > 0 else 0.0,
            'stage_timings': dict(metrics.stage_timings),
            'memory': {
                'start_mb': metrics.start_memory_mb,
                'peak_mb': metrics.peak_memory_mb,
            },
            'custom': dict(metrics.custom),
        }

    def record_metric(self, metric_name: str, value: Any) -> None:
        """Attach a job-specific value to the summary; ignored outside a run."""
        if self._running:
            self._metrics.custom[metric_name] = value

    def start_stage(self, stage_name: str) -> None:
        self._open_stages[stage_name] = time.perf_counter()

    def end_stage(self, stage_name: str) -> float:
        """Close a stage and return its duration; 0.0 for a stage that was never started."""
        started = self._open_stages.pop(stage_name, None)
        if started is None:
            return 0.0

        duration = time.perf_counter() - started
        timings = self._metrics.stage_timings
        timings[stage_name] = timings.get(stage_name, 0.0) + duration
        self._sample_memory()
        return duration

    def record_processing_result(self, success: bool) -> None:
        """Count one transformed row as valid or invalid."""
        self._metrics.rows_processed += 1
        if success:
            self._metrics.rows_valid += 1
        else:
            self._metrics.rows_invalid += 1

    def _sample_memory(self) -> float:
        """Current RSS in MB, raising the recorded peak when exceeded."""
        try:
            rss_mb = self._process.memory_info().rss / _MB
        except psutil.Error as e:
            self.logger.warning(f"Cannot read process memory: {e}")
            return 0.0
        self._metrics.peak_memory_mb = max(self._metrics.peak_memory_mb, rss_mb)
        return rss_mb
