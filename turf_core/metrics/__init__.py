"""
Metrics Module: Diagnostics, counters, histograms.

- Counters: fixes_in, fixes_accepted, stationary_locks, loops_found, etc.
- Drop reasons: every rejected fix or skipped polygon is counted by reason
- Histograms: conditioner accuracy, implied speed, pause gaps

Usage:
    from turf_core.metrics import get_metrics

    metrics = get_metrics()
    metrics.increment('fixes_in')
    metrics.increment_drop('poor_accuracy')
    metrics.record_histogram('conditioner_accuracy_m', 4.2)
"""

from .counters import MetricsCollector, CounterSnapshot

# Global singleton for easy access
_global_metrics = None


def get_metrics() -> MetricsCollector:
    """
    Get the global metrics collector singleton.

    Returns:
        MetricsCollector instance
    """
    global _global_metrics
    if _global_metrics is None:
        _global_metrics = MetricsCollector()
    return _global_metrics


def reset_metrics():
    """Reset global metrics (for testing)."""
    global _global_metrics
    _global_metrics = MetricsCollector()


__all__ = ['MetricsCollector', 'CounterSnapshot', 'get_metrics', 'reset_metrics']
