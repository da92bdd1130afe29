"""
Tests for the pooled Rserve backend, with in-memory sessions.
"""

from unittest.mock import MagicMock, patch

import numpy as np
import pytest

from src.core.errors import BackendComputationError, BackendSessionError
from src.stats.pool import Session, SessionPool
from src.stats.rserve import RserveSession, RserveStatistics


class RecordingSession(Session):
    """Answers R expressions from a canned table"""

    def __init__(self, answers):
        self.answers = answers
        self.bindings = {}
        self.evaluated = []
        self.removed = []
        self.closed = False

    def assign(self, name, value):
        self.bindings[name] = value

    def evaluate(self, expression):
        self.evaluated.append(expression)
        answer = self.answers.get(expression)
        if isinstance(answer, Exception):
            raise answer
        return answer

    def remove(self, *names):
        self.removed.append(names)
        for name in names:
            self.bindings.pop(name, None)

    def close(self):
        self.closed = True


@pytest.fixture
def answers():
    return {
        "cor(x, y, method='pearson')": 0.25,
        "time_warp$distance": 42.0,
        "result$outliers[,2]": np.array([11, 4]),
    }


@pytest.fixture
def sessions():
    return []


@pytest.fixture
def backend(answers, sessions):
    def factory():
        session = RecordingSession(answers)
        sessions.append(session)
        return session

    return RserveStatistics(SessionPool(factory, size=1))


class TestRserveStatistics:
    """Tests for RserveStatistics class."""

    def test_correlation(self, backend, sessions):
        """Test correlation binds inputs, evaluates cor and cleans up."""
        assert backend.correlation([1, 2, 3], [2, 4, 7]) == 0.25

        session = sessions[0]
        assert session.evaluated == ["cor(x, y, method='pearson')"]
        assert session.removed == [("x", "y")]
        assert session.bindings == {}

    def test_warping_distance(self, backend, sessions):
        assert backend.warping_distance([1, 2], [2, 3]) == 42.0
        assert sessions[0].evaluated == ["time_warp <- dtw(x, y)", "time_warp$distance"]
        assert sessions[0].removed == [("x", "y", "time_warp")]

    def test_level_shifts_sorted(self, backend, sessions):
        assert backend.detect_level_shifts([1.0] * 20) == [4, 11]
        assert sessions[0].removed == [("x", "x_ts", "result")]

    def test_no_level_shift(self, backend, answers):
        answers["result$outliers[,2]"] = np.array([], dtype=int)

        assert backend.detect_level_shifts([1.0] * 20) == []

    def test_evaluation_error_keeps_session(self, backend, answers, sessions):
        """Test an R error fails the computation but the session stays pooled."""
        answers["cor(x, y, method='pearson')"] = BackendComputationError("cor failed")

        with pytest.raises(BackendComputationError, match="cor failed"):
            backend.correlation([1, 2, 3], [1, 2, 3])

        assert sessions[0].removed == [("x", "y")]
        assert not sessions[0].closed
        assert backend.pool.available == 1

    def test_broken_session_is_discarded(self, backend, answers, sessions):
        """Test a transport failure replaces the session."""
        answers["time_warp$distance"] = BackendSessionError("connection reset")

        with pytest.raises(BackendSessionError):
            backend.warping_distance([1, 2], [1, 2])

        assert sessions[0].closed
        assert len(sessions) == 2
        assert backend.pool.available == 1

    def test_close_shuts_pool(self, backend, sessions):
        backend.close()

        assert backend.pool.closed
        assert sessions[0].closed
        with pytest.raises(BackendComputationError):
            backend.correlation([1, 2, 3], [1, 2, 3])


class TestRserveSession:
    """Tests for RserveSession with a mocked pyRserve module."""

    @pytest.fixture
    def pyrserve(self):
        module = MagicMock()
        with patch.dict("sys.modules", {"pyRserve": module}):
            yield module

    def test_loads_extensions(self, pyrserve):
        connection = pyrserve.connect.return_value

        RserveSession(host="rserve", port=6312)

        pyrserve.connect.assert_called_once_with(host="rserve", port=6312)
        assert [c.args[0] for c in connection.voidEval.call_args_list] == [
            "library('dtw')",
            "library('tsoutliers')",
        ]
        connection.close.assert_not_called()

    def test_failed_extension_closes_connection(self, pyrserve):
        connection = pyrserve.connect.return_value
        connection.voidEval.side_effect = RuntimeError("there is no package called 'dtw'")

        with pytest.raises(RuntimeError, match="no package called"):
            RserveSession()

        connection.close.assert_called_once()
