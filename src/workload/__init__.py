"""
Workload analysis.
"""

from .changepoint import ChangePointDetector

__all__ = ["ChangePointDetector"]
