"""Calculator modules for the valuation engine."""

from .fx_converter import FXConverter
from .performance_calculator import PerformanceCalculator, compute_performance
from .valuation_reconstructor import ValuationReconstructor, reconstruct

__all__ = [
    "FXConverter",
    "PerformanceCalculator",
    "compute_performance",
    "ValuationReconstructor",
    "reconstruct",
]
