"""
Config - Filter Configuration Loading
=====================================
"""

from .filter_config import KalmanFilterConfig, build_kalman_filter

__all__ = ['KalmanFilterConfig', 'build_kalman_filter']
