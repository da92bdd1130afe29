"""
Tests for the detector scheduler.
"""

from unittest.mock import MagicMock

from src.anomaly.detector import Detector
from src.anomaly.models import AnomalyReport
from src.anomaly.scheduler import DetectorScheduler
from src.core.errors import DataSourceError

REPORT = AnomalyReport(60_000, "shop", "GET /a", "Correlation: 0.1000", "correlation")


def mock_detector(name, due=True, result=None, error=None):
    detector = MagicMock(spec=Detector)
    detector.name = name
    detector.is_due.return_value = due
    if error is not None:
        detector.run.side_effect = error
    else:
        detector.run.return_value = result or []
    return detector


class TestDetectorScheduler:
    """Tests for DetectorScheduler class."""

    def test_runs_due_detectors(self):
        due = mock_detector("correlation:shop", result=[REPORT])
        idle = mock_detector("path:shop", due=False)
        scheduler = DetectorScheduler([due, idle], clock=lambda: 120_000)

        reports = scheduler.run_once()

        assert reports == [REPORT]
        due.run.assert_called_once_with(120_000)
        idle.run.assert_not_called()
        assert scheduler.anomalies == 1

    def test_failed_run_does_not_stop_others(self):
        failing = mock_detector("correlation:shop", error=DataSourceError("db down"))
        healthy = mock_detector("path:shop", result=[REPORT])
        scheduler = DetectorScheduler([failing, healthy], clock=lambda: 0)

        reports = scheduler.run_once()

        assert reports == [REPORT]
        assert scheduler.failures == 1
        assert scheduler.runs == 2

    def test_run_iterations(self):
        detector = mock_detector("correlation:shop")
        sleep = MagicMock()
        scheduler = DetectorScheduler([detector], clock=lambda: 0, sleep=sleep, tick_seconds=5)

        scheduler.run(iterations=3)

        assert detector.run.call_count == 3
        assert sleep.call_count == 2
        sleep.assert_called_with(5)

    def test_stop(self):
        detector = mock_detector("correlation:shop")
        scheduler = DetectorScheduler([detector], clock=lambda: 0)

        def stop_after_tick(_seconds):
            scheduler.stop()

        scheduler.sleep = stop_after_tick
        scheduler.run()

        assert detector.run.call_count == 1
        detector.stop.assert_called_once()

    def test_clock_advances_detectors(self, detector_config, data_source, sink, backend):
        """Test a real detector bootstraps on the first tick and advances later."""
        from src.anomaly.analysis import get_analysis

        times = iter([600_000, 630_000, 660_000])
        detector = Detector(
            detector_config,
            get_analysis("correlation", detector_config.analysis_config, backend),
            data_source,
            sink,
        )
        scheduler = DetectorScheduler(
            [detector], clock=lambda: next(times), sleep=lambda _seconds: None
        )

        scheduler.run(iterations=3)

        assert detector.window_end == 660_000
        assert scheduler.runs == 2
