"""
Periodic anomaly detectors over application runtime data.
"""

from .analysis import ANALYSIS_REGISTRY, DetectorAnalysis, get_analysis
from .detector import Detector
from .models import (
    AnomalyReport,
    Correlation,
    CorrelationConfig,
    DetectorConfig,
    DetectorState,
    PathConfig,
    PathRatio,
)
from .scheduler import DetectorScheduler
from .sinks import AnomalySink, DatabaseAnomalySink, KafkaAnomalySink, LoggingAnomalySink

__all__ = [
    "ANALYSIS_REGISTRY",
    "AnomalyReport",
    "AnomalySink",
    "Correlation",
    "CorrelationConfig",
    "DatabaseAnomalySink",
    "Detector",
    "DetectorAnalysis",
    "DetectorConfig",
    "DetectorScheduler",
    "DetectorState",
    "KafkaAnomalySink",
    "LoggingAnomalySink",
    "PathConfig",
    "PathRatio",
    "get_analysis",
]
