"""
特征与质量评估模块
=================

包含:
- 信号质量评估 (Signal Quality)
- RR间期与分析上下文特征 (RR Features)
"""

from .signal_quality import SignalQuality, SignalQualityAssessor
from .rr_features import RRFeatureExtractor

__all__ = ['SignalQuality', 'SignalQualityAssessor', 'RRFeatureExtractor']
