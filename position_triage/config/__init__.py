"""
Engine configuration.
"""

from .thresholds import DEFAULT_THRESHOLDS, HealthThresholds, load_thresholds

__all__ = [
    'DEFAULT_THRESHOLDS',
    'HealthThresholds',
    'load_thresholds',
]
