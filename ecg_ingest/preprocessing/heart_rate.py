"""
心率估计
========

RR间期 -> 瞬时心率 -> 中位数聚合

    RR_i = (r_{i+1} - r_i) / fs           (秒)
    HR_i = 60 / RR_i                      (BPM)
    HR   = median{HR_i | min_bpm ≤ HR_i ≤ max_bpm}

中位数对单次误检/漏检稳健; 生理上不可能的间期先行剔除
"""

from typing import Optional

import numpy as np
from loguru import logger


class HeartRateEstimator:
    """
    心率估计器

    R峰少于2个, 或没有任何间期落在生理范围内时, 返回None (不返回0或NaN)

    Attributes:
        sampling_rate: 采样率 (Hz)
        min_bpm: 最低可信心率
        max_bpm: 最高可信心率
    """

    def __init__(
        self,
        sampling_rate: float,
        min_bpm: float = 20.0,
        max_bpm: float = 300.0,
        decimals: int = 1
    ):
        self.sampling_rate = sampling_rate
        self.min_bpm = min_bpm
        self.max_bpm = max_bpm
        self.decimals = decimals

    def instantaneous_bpm(self, r_peaks: np.ndarray) -> np.ndarray:
        """逐个RR间期的瞬时心率 (BPM)"""
        r_peaks = np.asarray(r_peaks, dtype=np.float64)
        if r_peaks.size < 2:
            return np.array([], dtype=np.float64)

        rr_sec = np.diff(r_peaks) / self.sampling_rate
        rr_sec = rr_sec[rr_sec > 0]
        return 60.0 / rr_sec

    def estimate(self, r_peaks: np.ndarray) -> Optional[float]:
        """
        估计心率

        Args:
            r_peaks: 严格递增的R峰索引

        Returns:
            心率 (BPM, 保留一位小数), 无法估计时为None
        """
        bpm = self.instantaneous_bpm(r_peaks)
        if bpm.size == 0:
            return None

        valid = bpm[(bpm >= self.min_bpm) & (bpm <= self.max_bpm)]
        if valid.size == 0:
            logger.warning(f"{bpm.size} 个RR间期均超出生理范围 "
                           f"[{self.min_bpm}, {self.max_bpm}] BPM, 心率未定义")
            return None

        if valid.size < bpm.size:
            logger.debug(f"剔除 {bpm.size - valid.size} 个生理上不可能的RR间期")

        heart_rate = round(float(np.median(valid)), self.decimals)
        logger.debug(f"心率估计: {heart_rate} BPM (基于 {valid.size} 个RR间期)")

        return heart_rate
