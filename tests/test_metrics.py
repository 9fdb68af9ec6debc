"""Tests for the metrics recorder."""

import threading

from siteqa.metrics import MetricsRecorder


class TestMetricsRecorder:
    """Test cases for MetricsRecorder."""

    def test_unknown_check_is_zero(self):
        metrics = MetricsRecorder().get("empty-code-block")
        assert metrics.executions == 0
        assert metrics.passed == 0
        assert metrics.failed == 0
        assert metrics.failure_rate == 0.0

    def test_counts(self):
        """Executions, passes, fails, errors and skips are tracked separately."""
        recorder = MetricsRecorder()
        for _ in range(3):
            recorder.record_execution("k")
        recorder.increment("k", passed=True)
        recorder.increment("k", passed=False, count=4)
        recorder.record_error("k")
        recorder.record_skip("k")

        m = recorder.get("k")
        assert m.executions == 3
        assert m.passed == 1
        assert m.failed == 1
        assert m.failure_count == 4
        assert m.errors == 1
        assert m.skipped == 1
        assert m.conclusive == 2
        assert m.failure_rate == 0.5

    def test_get_returns_copy(self):
        recorder = MetricsRecorder()
        recorder.record_execution("k")

        copy = recorder.get("k")
        copy.executions = 100

        assert recorder.get("k").executions == 1

    def test_summary(self):
        recorder = MetricsRecorder()
        recorder.record_execution("b")
        recorder.record_skip("a")

        lines = recorder.summary().splitlines()
        assert lines[0].startswith("a: executions=0")
        assert lines[1].startswith("b: executions=1")

    def test_concurrent_increments(self):
        recorder = MetricsRecorder()

        def work():
            for _ in range(500):
                recorder.record_execution("k")
                recorder.increment("k", passed=True)

        threads = [threading.Thread(target=work) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        m = recorder.get("k")
        assert m.executions == 4000
        assert m.passed == 4000
