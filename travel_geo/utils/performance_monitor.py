"""
Performance Monitoring Utilities
===============================

Timing statistics for the geo engine's hot paths (distance matrix,
route ordering, multi-destination analysis) plus a process memory
snapshot for reports.

Classes:
    TimingStats: Statistics for function execution times
    PerformanceMonitor: Collects timing statistics and builds reports

Functions:
    measure_time: Decorator for measuring function execution time
    get_performance_stats: Timing statistics of the module monitor
    get_performance_report: Timing plus memory report
    reset_performance_stats: Clear the module monitor

Author: Travel Geo Engine Team
"""

import time
import logging
import functools
import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Optional

import psutil

from config import config


@dataclass
class TimingStats:
    """
    Statistics for function execution times

    Attributes:
        function_name (str): Name of the function
        call_count (int): Number of times function was called
        total_time (float): Total execution time in seconds
        min_time (float): Minimum execution time
        max_time (float): Maximum execution time
        recent_times (deque): Recent execution times (sliding window)
        last_called (datetime): When function was last called
    """
    function_name: str
    call_count: int = 0
    total_time: float = 0.0
    min_time: float = float('inf')
    max_time: float = 0.0
    recent_times: deque = field(default_factory=lambda: deque(maxlen=100))
    last_called: Optional[datetime] = None

    @property
    def avg_time(self) -> float:
        """Calculate average execution time"""
        return self.total_time / self.call_count if self.call_count > 0 else 0.0

    def add_timing(self, execution_time: float) -> None:
        """Add a new timing measurement"""
        self.call_count += 1
        self.total_time += execution_time
        self.min_time = min(self.min_time, execution_time)
        self.max_time = max(self.max_time, execution_time)
        self.recent_times.append(execution_time)
        self.last_called = datetime.now()

    def to_dict(self) -> Dict:
        """Convert to dictionary for serialization"""
        return {
            "function_name": self.function_name,
            "call_count": self.call_count,
            "total_time": round(self.total_time, 6),
            "min_time": round(self.min_time, 6) if self.min_time != float('inf') else 0,
            "max_time": round(self.max_time, 6),
            "avg_time": round(self.avg_time, 6),
            "last_called": self.last_called.isoformat() if self.last_called else None
        }


class PerformanceMonitor:
    """
    Collects timing statistics and generates performance reports
    """

    def __init__(self, slow_function_threshold: float = None):
        """Initialize Performance Monitor"""
        self.logger = logging.getLogger(__name__)

        self._timing_stats: Dict[str, TimingStats] = {}
        self._lock = threading.RLock()

        self.slow_function_threshold = (slow_function_threshold
                                        if slow_function_threshold is not None
                                        else config.SLOW_FUNCTION_THRESHOLD_S)

    def record_timing(self, function_name: str, execution_time: float) -> None:
        """
        Record timing for a function

        Args:
            function_name (str): Name of the function
            execution_time (float): Execution time in seconds
        """
        with self._lock:
            if function_name not in self._timing_stats:
                self._timing_stats[function_name] = TimingStats(function_name)

            self._timing_stats[function_name].add_timing(execution_time)

        if execution_time > self.slow_function_threshold:
            self.logger.warning(f"Slow function: {function_name} took {execution_time:.2f}s")

    def get_timing_stats(self, function_name: str = None) -> Dict:
        """
        Get timing statistics

        Args:
            function_name (str): Specific function name, or None for all

        Returns:
            Dict: Timing statistics
        """
        with self._lock:
            if function_name:
                stats = self._timing_stats.get(function_name)
                return stats.to_dict() if stats else {}
            return {name: stats.to_dict() for name, stats in self._timing_stats.items()}

    def get_slowest_functions(self, limit: int = 5) -> List[Dict]:
        """Functions sorted by average execution time, slowest first"""
        with self._lock:
            sorted_stats = sorted(self._timing_stats.values(),
                                  key=lambda x: x.avg_time, reverse=True)
            return [stats.to_dict() for stats in sorted_stats[:limit]]

    def get_memory_usage_mb(self) -> float:
        """Resident memory of the current process in MB"""
        try:
            return psutil.Process().memory_info().rss / 1024 / 1024
        except psutil.Error as e:
            self.logger.warning(f"Error getting memory usage: {e}")
            return 0.0

    def generate_performance_report(self) -> Dict:
        """
        Generate performance report

        Returns:
            Dict: Timing summary, slowest functions and memory usage
        """
        with self._lock:
            total_calls = sum(stats.call_count for stats in self._timing_stats.values())
            total_time = sum(stats.total_time for stats in self._timing_stats.values())

            return {
                "report_timestamp": datetime.now().isoformat(),
                "summary": {
                    "total_functions_monitored": len(self._timing_stats),
                    "total_function_calls": total_calls,
                    "total_execution_time_seconds": round(total_time, 4),
                    "average_call_time": round(total_time / total_calls, 6) if total_calls > 0 else 0
                },
                "slowest_functions": self.get_slowest_functions(),
                "memory_mb": round(self.get_memory_usage_mb(), 2)
            }

    def reset_stats(self) -> None:
        """Reset all performance statistics"""
        with self._lock:
            self._timing_stats.clear()


# Global performance monitor instance
_performance_monitor = PerformanceMonitor()


def measure_time(func: Callable = None, *, category: str = None) -> Callable:
    """
    Decorator to measure function execution time

    Args:
        func (Callable): Function to decorate
        category (str): Optional category for grouping functions

    Examples:
        @measure_time
        def create_distance_matrix(places): ...

        @measure_time(category="routing")
        def optimize_route_order(self, places): ...
    """
    def decorator(f: Callable) -> Callable:
        @functools.wraps(f)
        def wrapper(*args, **kwargs):
            start_time = time.perf_counter()
            try:
                return f(*args, **kwargs)
            finally:
                execution_time = time.perf_counter() - start_time
                function_name = f"{category}.{f.__name__}" if category else f.__name__
                _performance_monitor.record_timing(function_name, execution_time)

        return wrapper

    # Handle both @measure_time and @measure_time() usage
    if func is None:
        return decorator
    return decorator(func)


def get_performance_stats() -> Dict:
    """Get current performance statistics"""
    return _performance_monitor.get_timing_stats()


def get_performance_report() -> Dict:
    """Generate performance report"""
    return _performance_monitor.generate_performance_report()


def reset_performance_stats() -> None:
    """Reset all performance statistics"""
    _performance_monitor.reset_stats()
