"""
预处理摘要
==========

组装 PreprocessResult (下游AI解读与报告持久化使用) 和
SignalPreview (仅用于UI渲染, 截断为前2000个样本)

所有统计量在截断之前计算, 预览长度不影响任何数值结果
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

import numpy as np

from .parsing.signal import Signal
from .preprocessing.preprocessor import PreprocessedSignal

PREVIEW_LENGTH = 2000


@dataclass(frozen=True)
class PreprocessResult:
    """
    数值摘要

    to_dict() 的键名与持久化报告中 preprocess 字段一致
    """

    sample_rate_hz: float
    sample_count: int
    duration_sec: float
    mean: float
    std: float
    min: float
    max: float
    r_peak_indices: Tuple[int, ...] = ()
    estimated_heart_rate_bpm: Optional[float] = None

    @classmethod
    def empty(cls) -> 'PreprocessResult':
        """图像上传使用的全零/空哨兵值"""
        return cls(
            sample_rate_hz=0.0,
            sample_count=0,
            duration_sec=0.0,
            mean=0.0,
            std=0.0,
            min=0.0,
            max=0.0
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'sampleRateHz': self.sample_rate_hz,
            'sampleCount': self.sample_count,
            'durationSec': self.duration_sec,
            'mean': self.mean,
            'std': self.std,
            'min': self.min,
            'max': self.max,
            'rPeakIndices': list(self.r_peak_indices),
            'estimatedHeartRateBpm': self.estimated_heart_rate_bpm,
        }

    def to_json(self) -> str:
        """确定性序列化 (固定键序)"""
        return json.dumps(self.to_dict(), ensure_ascii=False)


@dataclass(frozen=True)
class SignalPreview:
    """截断后的cleaned/normalized副本, 仅用于存储与渲染"""

    cleaned: Tuple[float, ...] = field(default_factory=tuple)
    normalized: Tuple[float, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'cleaned': list(self.cleaned),
            'normalized': list(self.normalized),
        }


class SummaryBuilder:
    """
    摘要构建器

    Attributes:
        preview_length: 预览截断长度
    """

    def __init__(self, preview_length: int = PREVIEW_LENGTH):
        if preview_length < 0:
            raise ValueError(f"预览长度不能为负: {preview_length}")
        self.preview_length = preview_length

    def build(
        self,
        signal: Signal,
        preprocessed: PreprocessedSignal,
        r_peaks: np.ndarray,
        heart_rate: Optional[float]
    ) -> PreprocessResult:
        """
        组装数值摘要

        Args:
            signal: 原始信号
            preprocessed: 预处理结果 (统计量来源)
            r_peaks: R峰索引
            heart_rate: 估计心率 (可为None)

        Returns:
            PreprocessResult
        """
        return PreprocessResult(
            sample_rate_hz=float(signal.sample_rate_hz),
            sample_count=signal.sample_count,
            duration_sec=signal.duration_sec,
            mean=float(preprocessed.mean),
            std=float(preprocessed.std),
            min=float(preprocessed.min),
            max=float(preprocessed.max),
            r_peak_indices=tuple(int(i) for i in r_peaks),
            estimated_heart_rate_bpm=heart_rate
        )

    def build_preview(self, preprocessed: PreprocessedSignal) -> SignalPreview:
        """cleaned与normalized分别按相同长度独立截断"""
        n = self.preview_length
        return SignalPreview(
            cleaned=tuple(float(v) for v in preprocessed.cleaned[:n]),
            normalized=tuple(float(v) for v in preprocessed.normalized[:n])
        )
