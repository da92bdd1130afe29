"""
Detector analyses registry and factory.
"""

from src.stats.backend import StatisticsBackend

from .base import DetectorAnalysis
from .correlation import CorrelationAnalysis, distance_increase
from .path import PathAnalysis

# Registry of available analyses
ANALYSIS_REGISTRY = {
    "correlation": CorrelationAnalysis,
    "path": PathAnalysis,
}


def get_analysis(
    analysis_name: str, config: dict | None = None, backend: StatisticsBackend | None = None
) -> DetectorAnalysis:
    """Factory to create a detector analysis

    Args:
        analysis_name: Name of the analysis (e.g., 'correlation')
        config: Configuration dict for the analysis
        backend: Statistics backend used by numeric analyses

    Returns:
        Instance of the analysis

    Raises:
        ValueError: If analysis_name is not registered
    """
    if analysis_name not in ANALYSIS_REGISTRY:
        available = ", ".join(ANALYSIS_REGISTRY.keys())
        raise ValueError(f"Unknown analysis '{analysis_name}'. Available analyses: {available}")

    analysis_class = ANALYSIS_REGISTRY[analysis_name]
    return analysis_class(config, backend)


def list_analyses() -> list[str]:
    """List all available detector analyses"""
    return list(ANALYSIS_REGISTRY.keys())


__all__ = [
    "DetectorAnalysis",
    "CorrelationAnalysis",
    "PathAnalysis",
    "distance_increase",
    "get_analysis",
    "list_analyses",
]
