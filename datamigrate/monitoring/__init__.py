"""
Monitoring module for import and export jobs.

This module provides performance monitoring and metrics collection
for job runs.
"""

from .performance_monitor import PerformanceMonitor, JobMetrics

__all__ = [
    'PerformanceMonitor',
    'JobMetrics'
]
