"""
信号预处理
==========

依次执行:
1. 基线校正 -> cleaned
2. Z-score标准化 -> normalized (方差为零时输出全零)
3. 在cleaned上计算统计量 (mean, std, min, max)
"""

from dataclasses import dataclass, field

import numpy as np
from loguru import logger

from ..parsing.signal import Signal
from .baseline_correction import BaselineCorrector


def _readonly(values: np.ndarray) -> np.ndarray:
    values = np.array(values, dtype=np.float64)
    values.setflags(write=False)
    return values


@dataclass(frozen=True, eq=False)
class PreprocessedSignal:
    """预处理结果 (数组只读, 与原信号等长)"""

    cleaned: np.ndarray = field(default_factory=lambda: _readonly([]))
    normalized: np.ndarray = field(default_factory=lambda: _readonly([]))
    mean: float = 0.0
    std: float = 0.0
    min: float = 0.0
    max: float = 0.0
    is_flat: bool = True

    def __len__(self) -> int:
        return int(self.cleaned.size)


class Preprocessor:
    """
    ECG信号预处理器

    对任意有限输入不抛出异常: 空信号、单样本和常数信号
    均得到全零/空的确定结果

    Usage:
        preprocessed = Preprocessor().process(signal)
    """

    def __init__(
        self,
        baseline_method: str = 'moving_average',
        baseline_window_sec: float = 0.75,
        variance_epsilon: float = 1e-10
    ):
        self.baseline_method = baseline_method
        self.baseline_window_sec = baseline_window_sec
        self.variance_epsilon = variance_epsilon

    def process(self, signal: Signal) -> PreprocessedSignal:
        """
        执行预处理

        Args:
            signal: 解析后的信号

        Returns:
            PreprocessedSignal
        """
        raw = signal.samples

        if raw.size == 0:
            logger.warning("空信号, 跳过预处理")
            return PreprocessedSignal()

        corrector = BaselineCorrector(
            method=self.baseline_method,
            sampling_rate=signal.sample_rate_hz,
            window_sec=self.baseline_window_sec
        )
        cleaned, _ = corrector.correct(raw)

        mean = float(np.mean(cleaned))
        std = float(np.std(cleaned))

        is_flat = self.is_flat(cleaned, reference=raw)
        normalized = self._normalize_signal(cleaned, mean, std, is_flat)

        if is_flat:
            logger.warning(f"信号方差接近零 (std={std:.3e}), 标准化输出全零")

        logger.debug(f"预处理完成: n={raw.size}, mean={mean:.4f}, std={std:.4f}")

        return PreprocessedSignal(
            cleaned=_readonly(cleaned),
            normalized=_readonly(normalized),
            mean=mean,
            std=std,
            min=float(np.min(cleaned)),
            max=float(np.max(cleaned)),
            is_flat=is_flat
        )

    def is_flat(self, cleaned: np.ndarray, reference: np.ndarray = None) -> bool:
        """
        判断信号是否近似常数

        阈值随原信号量级缩放, 避免大直流偏置下的浮点残差被当作有效波动
        """
        if cleaned.size == 0:
            return True
        scale = 1.0
        if reference is not None and reference.size:
            scale = max(1.0, float(np.max(np.abs(reference))))
        return float(np.std(cleaned)) < self.variance_epsilon * scale

    def _normalize_signal(
        self,
        cleaned: np.ndarray,
        mean: float,
        std: float,
        is_flat: bool
    ) -> np.ndarray:
        """
        信号标准化

        Z-score标准化: x' = (x - μ) / σ
        """
        if is_flat:
            return np.zeros_like(cleaned)
        return (cleaned - mean) / std
