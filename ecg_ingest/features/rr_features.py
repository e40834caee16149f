"""
RR间期与分析上下文特征
======================

为AI解读提供的附加上下文:
1. RR间期统计 (秒)
2. 时域HRV指标
3. R峰附近的原始信号片段
4. 原始信号统计特征 (偏度、峰度)

数学原理:
---------
RRI = {RR_1, RR_2, ..., RR_N}

- SDNN: √(1/(N-1) · Σ(RRi - mean(RR))²)
- RMSSD: √(1/(N-1) · Σ(RRi+1 - RRi)²)
- pNN50: #{|ΔRRi| > 50ms} / N · 100%

参考文献:
- Task Force of ESC and NASPE, 1996
"""

import numpy as np
from scipy import stats
from typing import Dict, List
from loguru import logger


class RRFeatureExtractor:
    """
    RR间期特征提取器

    空输入返回全零特征, 不产生NaN

    Attributes:
        sampling_rate: ECG采样率 (Hz)
        segment_duration: R峰片段总时长 (秒)
        max_segments: 最多提取的片段数
    """

    def __init__(
        self,
        sampling_rate: float,
        segment_duration: float = 0.4,
        max_segments: int = 10
    ):
        self.sampling_rate = sampling_rate
        self.segment_duration = segment_duration
        self.max_segments = max_segments

    def extract(self, raw_signal: np.ndarray, r_peaks: np.ndarray) -> Dict:
        """
        提取全部上下文特征

        Args:
            raw_signal: 原始幅值序列
            r_peaks: R峰索引

        Returns:
            特征字典
        """
        raw_signal = np.asarray(raw_signal, dtype=np.float64)
        r_peaks = np.asarray(r_peaks, dtype=np.int64)

        rr_intervals = np.diff(r_peaks) / self.sampling_rate if r_peaks.size > 1 else np.array([])

        features = {
            'rPeakIndices': [int(i) for i in r_peaks],
            'rrIntervals': [float(v) for v in rr_intervals],
        }
        features.update(self.extract_rr_statistics(rr_intervals))
        features['timeDomain'] = self.extract_time_domain(rr_intervals * 1000)
        features['signalSegments'] = self.extract_segments(raw_signal, r_peaks)
        features['statisticalFeatures'] = self.extract_statistics(raw_signal)

        logger.debug(f"上下文特征: {len(rr_intervals)} 个RR间期, "
                     f"{len(features['signalSegments'])} 个片段")

        return features

    def extract_rr_statistics(self, rr_intervals: np.ndarray) -> Dict[str, float]:
        """RR间期基本统计 (秒) 与变异系数"""
        if rr_intervals.size == 0:
            return {'rrMean': 0.0, 'rrStd': 0.0, 'rrMin': 0.0, 'rrMax': 0.0,
                    'heartRateVariability': 0.0}

        rr_mean = float(np.mean(rr_intervals))
        rr_std = float(np.std(rr_intervals)) if rr_intervals.size > 1 else 0.0

        return {
            'rrMean': rr_mean,
            'rrStd': rr_std,
            'rrMin': float(np.min(rr_intervals)),
            'rrMax': float(np.max(rr_intervals)),
            'heartRateVariability': rr_std / rr_mean if rr_mean > 0 else 0.0,
        }

    def extract_time_domain(self, rr_ms: np.ndarray) -> Dict[str, float]:
        """
        时域HRV特征

        Args:
            rr_ms: RR间期序列 (ms)

        Returns:
            sdnn, rmssd (ms), pnn50 (%)
        """
        features = {'sdnn': 0.0, 'rmssd': 0.0, 'pnn50': 0.0}

        if rr_ms.size > 1:
            features['sdnn'] = float(np.std(rr_ms, ddof=1))

        rr_diff = np.diff(rr_ms)
        if rr_diff.size > 0:
            features['rmssd'] = float(np.sqrt(np.mean(rr_diff ** 2)))
            features['pnn50'] = float(np.sum(np.abs(rr_diff) > 50) / rr_diff.size * 100)

        return features

    def extract_segments(self, raw_signal: np.ndarray, r_peaks: np.ndarray) -> List[Dict]:
        """以R峰为中心截取原始信号片段 (闭区间 [start, end])"""
        half = int(self.segment_duration * self.sampling_rate) // 2
        last = len(raw_signal) - 1
        segments = []

        for peak in r_peaks[:self.max_segments]:
            start = max(0, int(peak) - half)
            end = min(last, int(peak) + half)
            segments.append({
                'start': start,
                'end': end,
                'samples': [float(v) for v in raw_signal[start:end + 1]],
            })

        return segments

    def extract_statistics(self, raw_signal: np.ndarray) -> Dict[str, float]:
        """原始信号统计特征, 常数信号的偏度/峰度记为0"""
        if raw_signal.size == 0:
            return {'mean': 0.0, 'std': 0.0, 'min': 0.0, 'max': 0.0,
                    'range': 0.0, 'skewness': 0.0, 'kurtosis': 0.0}

        std = float(np.std(raw_signal))
        minimum = float(np.min(raw_signal))
        maximum = float(np.max(raw_signal))

        if std > 0:
            skewness = float(np.nan_to_num(stats.skew(raw_signal)))
            kurtosis = float(np.nan_to_num(stats.kurtosis(raw_signal, fisher=False)))
        else:
            skewness = kurtosis = 0.0

        return {
            'mean': float(np.mean(raw_signal)),
            'std': std,
            'min': minimum,
            'max': maximum,
            'range': maximum - minimum,
            'skewness': skewness,
            'kurtosis': kurtosis,
        }
