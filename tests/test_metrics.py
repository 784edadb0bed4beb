"""
Unit tests for metrics module.

Tests cover:
- Counter increment (single-threaded and multi-threaded)
- Drop reason tracking
- Histogram recording and statistics
- Snapshot and reset functionality
- Thread safety
"""

import logging
import threading
import time

from turf_core.metrics import MetricsCollector, get_metrics, reset_metrics


class TestMetricsCollectorBasic:
    """Tests for basic metrics collector functionality."""

    def test_initialization(self):
        """Standard counters start at 0; unknown counters read as 0."""
        collector = MetricsCollector()

        assert collector.get_counter('fixes_in') == 0
        assert collector.get_counter('loops_found') == 0
        assert 'stationary_locks' in collector.snapshot().counters
        assert collector.get_counter('unknown_counter') == 0

    def test_increment_counter(self):
        collector = MetricsCollector()

        collector.increment('fixes_in')
        assert collector.get_counter('fixes_in') == 1

        collector.increment('fixes_in', 5)
        assert collector.get_counter('fixes_in') == 6

    def test_increment_drop_with_valid_reason(self):
        collector = MetricsCollector()

        collector.increment_drop('poor_accuracy')

        assert collector.get_counter('items_dropped') == 1
        assert collector.get_drop_count('poor_accuracy') == 1
        assert collector.snapshot().drop_reasons['poor_accuracy'] == 1

    def test_increment_drop_unknown_reason(self, caplog):
        """Unknown reason logs a warning and is still counted."""
        collector = MetricsCollector()

        with caplog.at_level(logging.WARNING, logger='turf_core.metrics.counters'):
            collector.increment_drop('cosmic_ray')

        assert 'cosmic_ray' in caplog.text
        assert collector.get_counter('items_dropped') == 1
        assert collector.get_drop_count('cosmic_ray') == 1

    def test_multiple_drop_reasons(self):
        collector = MetricsCollector()

        collector.increment_drop('null_island', 3)
        collector.increment_drop('teleport_jump', 5)
        collector.increment_drop('invalid_polygon', 2)

        snapshot = collector.snapshot()
        assert snapshot.drop_reasons['null_island'] == 3
        assert snapshot.drop_reasons['teleport_jump'] == 5
        assert snapshot.drop_reasons['invalid_polygon'] == 2
        assert snapshot.total_dropped() == 10


class TestHistograms:
    """Tests for histogram functionality."""

    def test_record_histogram(self):
        collector = MetricsCollector()

        collector.record_histogram('conditioner_accuracy_m', 1.23)
        collector.record_histogram('conditioner_accuracy_m', 2.45)
        collector.record_histogram('conditioner_accuracy_m', 1.80)

        stats = collector.get_histogram_stats('conditioner_accuracy_m')

        assert stats is not None
        assert stats['count'] == 3
        assert abs(stats['mean'] - 1.826) < 0.01
        assert stats['min'] == 1.23
        assert stats['max'] == 2.45

    def test_histogram_empty(self):
        assert MetricsCollector().get_histogram_stats('nonexistent') is None

    def test_histogram_percentiles(self):
        collector = MetricsCollector()
        for i in range(100):
            collector.record_histogram('test', float(i))

        stats = collector.get_histogram_stats('test')

        assert stats['count'] == 100
        assert 49 < stats['median'] < 51
        assert 94 < stats['p95'] < 96

    def test_histogram_max_samples_bounded(self):
        """Histograms are trimmed to half of max_samples when full."""
        collector = MetricsCollector()
        for i in range(15000):
            collector.record_histogram('test', float(i), max_samples=1000)

        assert len(collector.snapshot().histograms['test']) <= 1000


class TestSnapshot:
    """Tests for snapshot functionality."""

    def test_snapshot_creates_copy(self):
        collector = MetricsCollector()

        collector.increment('fixes_in', 10)
        snapshot1 = collector.snapshot()
        collector.increment('fixes_in', 5)
        snapshot2 = collector.snapshot()

        assert snapshot1.counters['fixes_in'] == 10
        assert snapshot2.counters['fixes_in'] == 15

    def test_snapshot_timestamp(self):
        collector = MetricsCollector()

        before = time.time()
        snapshot = collector.snapshot()
        after = time.time()

        assert before <= snapshot.timestamp <= after

    def test_snapshot_drop_rate(self):
        collector = MetricsCollector()

        collector.increment('fixes_in', 100)
        collector.increment_drop('poor_accuracy', 5)
        collector.increment_drop('impossible_speed', 3)

        assert abs(collector.snapshot().drop_rate(100) - 8.0) < 0.01
        assert collector.snapshot().drop_rate(0) == 0.0


class TestReset:
    """Tests for reset functionality."""

    def test_reset_clears_counters(self):
        collector = MetricsCollector()

        collector.increment('fixes_in', 100)
        collector.increment_drop('poor_accuracy', 5)
        collector.record_histogram('conditioner_accuracy_m', 1.23)

        collector.reset()

        assert collector.get_counter('fixes_in') == 0
        assert collector.get_counter('items_dropped') == 0
        snapshot = collector.snapshot()
        assert snapshot.total_dropped() == 0
        assert not snapshot.histograms

    def test_reset_reinitializes_standard_counters(self):
        collector = MetricsCollector()
        collector.increment('fixes_in', 100)
        collector.reset()
        assert 'fixes_in' in collector.snapshot().counters


class TestThreadSafety:
    """Tests for thread-safe operations."""

    def test_concurrent_increment(self):
        collector = MetricsCollector()
        num_threads = 10
        increments_per_thread = 1000

        def worker():
            for _ in range(increments_per_thread):
                collector.increment('fixes_in')

        threads = [threading.Thread(target=worker) for _ in range(num_threads)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert collector.get_counter('fixes_in') == num_threads * increments_per_thread

    def test_concurrent_drop_reasons(self):
        collector = MetricsCollector()
        num_threads = 5
        increments_per_thread = 200

        def worker(reason: str):
            for _ in range(increments_per_thread):
                collector.increment_drop(reason)

        threads = [
            threading.Thread(target=worker, args=(reason,))
            for reason in ['null_island', 'teleport_jump', 'parse_error']
            for _ in range(num_threads)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        expected = num_threads * increments_per_thread
        snapshot = collector.snapshot()
        assert snapshot.drop_reasons['null_island'] == expected
        assert snapshot.drop_reasons['teleport_jump'] == expected
        assert snapshot.drop_reasons['parse_error'] == expected


class TestGlobalSingleton:
    """Tests for global metrics singleton."""

    def test_get_metrics_returns_same_instance(self):
        assert get_metrics() is get_metrics()

    def test_reset_metrics_creates_new_instance(self):
        metrics1 = get_metrics()
        metrics1.increment('fixes_in', 100)

        reset_metrics()

        metrics2 = get_metrics()
        assert metrics2 is not metrics1
        assert metrics2.get_counter('fixes_in') == 0


class TestDropReasonCodes:
    """Tests for standard drop reason codes."""

    def test_all_standard_drop_reasons_defined(self):
        expected_reasons = [
            'null_island',
            'teleport_jump',
            'impossible_speed',
            'poor_accuracy',
            'implausible_velocity',
            'invalid_polygon',
            'degenerate_polygon',
            'parse_error',
        ]
        for reason in expected_reasons:
            assert reason in MetricsCollector.DROP_REASONS

    def test_drop_reasons_initialized_to_zero(self):
        collector = MetricsCollector()
        snapshot = collector.snapshot()
        for reason in collector.DROP_REASONS:
            assert snapshot.drop_reasons[reason] == 0


class TestPrintSummary:
    """Tests for print_summary functionality."""

    def test_print_summary_no_crash(self, capsys):
        collector = MetricsCollector()
        collector.increment('fixes_in', 100)
        collector.increment_drop('poor_accuracy', 5)
        collector.record_histogram('conditioner_accuracy_m', 1.23)

        collector.print_summary()

        captured = capsys.readouterr()
        assert 'METRICS SUMMARY' in captured.out
        assert 'fixes_in' in captured.out
        assert 'poor_accuracy' in captured.out
