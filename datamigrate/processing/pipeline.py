"""
Stage driver shared by the importer and exporter.

A StagePipeline runs named stages one at a time, logging entry into each
stage and timing it with the job's performance monitor.
"""

import logging
from typing import Any, Callable, List, Optional

from ..interfaces import PerformanceMonitorInterface


class StagePipeline:
    """
    Runs named stages strictly in sequence.

    Args:
        label: Prefix used in stage log lines ('etl' for import and export)
        monitor: Optional monitor receiving stage timings
    """

    def __init__(self, label: str = "etl", monitor: Optional[PerformanceMonitorInterface] = None):
        self.logger = logging.getLogger(__name__)
        self.label = label
        self.monitor = monitor
        self.completed: List[str] = []

    def run_stage(self, name: str, func: Callable[..., Any], *args) -> Any:
        """Run one stage; exceptions propagate after its timing is recorded."""
        self.logger.debug(f"{self.label} {name}.")
        if self.monitor is not None:
            self.monitor.start_stage(name)
        try:
            result = func(*args)
        finally:
            if self.monitor is not None:
                duration = self.monitor.end_stage(name)
                self.logger.debug(f"{self.label} {name} took {duration:.3f}s")
        self.completed.append(name)
        return result
