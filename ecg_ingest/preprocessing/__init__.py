"""
信号预处理模块
=============

包含:
- 基线漂移校正 (Baseline Wander Removal)
- 标准化与统计量 (Normalization)
- R峰检测 (R-peak Detection)
- 心率估计 (Heart Rate Estimation)
"""

from .baseline_correction import BaselineCorrector
from .preprocessor import Preprocessor, PreprocessedSignal
from .rpeak_detection import RPeakDetector
from .heart_rate import HeartRateEstimator

__all__ = [
    'BaselineCorrector',
    'Preprocessor',
    'PreprocessedSignal',
    'RPeakDetector',
    'HeartRateEstimator'
]
