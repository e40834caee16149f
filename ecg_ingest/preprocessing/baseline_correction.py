"""
基线漂移校正模块
================

实现多种基线漂移去除算法:
1. 滑动平均 (Moving Average, 默认)
2. 中值滤波 (Median Filtering)
3. 小波分解法 (Wavelet-based)
4. 高通滤波 (Butterworth Highpass)

数学原理:
---------
基线漂移主要由呼吸运动、电极运动等低频成分引起
频率通常在0.05-0.5Hz范围内

滑动平均方法:
baseline[n] = (1/W) · Σ x[n-k],  k ∈ [-W/2, W/2]
W 取约0.75s, 远宽于QRS波群 (~100ms), 因此QRS频段能量基本保留
"""

import numpy as np
from scipy import signal, ndimage
from typing import Tuple, Optional
import pywt
from loguru import logger


class BaselineCorrector:
    """
    ECG基线漂移校正器

    所有方法对任意有限输入 (含空信号、单样本) 均不抛出异常,
    输出与输入等长

    Attributes:
        method: 校正方法
        sampling_rate: 采样率 (Hz)
        window_sec: 滑动平均/中值窗口 (秒)
    """

    METHODS = ['moving_average', 'median', 'wavelet', 'highpass']

    # 样本数少于该值时退化为去均值
    MIN_SAMPLES = 3

    def __init__(
        self,
        method: str = 'moving_average',
        sampling_rate: float = 250.0,
        window_sec: float = 0.75,
        cutoff_hz: float = 0.5
    ):
        """
        初始化基线校正器

        Args:
            method: 校正方法 ('moving_average', 'median', 'wavelet', 'highpass')
            sampling_rate: 采样率
            window_sec: 滑动平均窗口长度 (秒)
            cutoff_hz: 高通/小波方法的基线截止频率 (Hz)
        """
        if method not in self.METHODS:
            raise ValueError(f"不支持的方法: {method}. 可选: {self.METHODS}")

        self.method = method
        self.sampling_rate = sampling_rate
        self.window_sec = window_sec
        self.cutoff_hz = cutoff_hz

        logger.debug(f"初始化基线校正器: method={method}, fs={sampling_rate}Hz")

    def correct(
        self,
        signal_data: np.ndarray,
        return_baseline: bool = False
    ) -> Tuple[np.ndarray, Optional[np.ndarray]]:
        """
        执行基线校正

        Args:
            signal_data: 输入ECG信号
            return_baseline: 是否返回估计的基线

        Returns:
            corrected_signal: 校正后的信号
            baseline: 估计的基线 (可选)
        """
        # 复制为可写数组, 输入可能是只读的Signal.samples (pywt不接受只读缓冲区)
        signal_data = np.array(signal_data, dtype=np.float64)

        if signal_data.size == 0:
            empty = np.array([], dtype=np.float64)
            return empty, (empty if return_baseline else None)

        if signal_data.size < self.MIN_SAMPLES:
            baseline = np.full_like(signal_data, np.mean(signal_data))
        else:
            method_map = {
                'moving_average': self._moving_average_baseline,
                'median': self._median_baseline,
                'wavelet': self._wavelet_baseline,
                'highpass': self._highpass_baseline
            }
            baseline = method_map[self.method](signal_data)

        corrected = signal_data - baseline

        if return_baseline:
            return corrected, baseline
        return corrected, None

    def _window_samples(self, n: int, odd: bool = False) -> int:
        window = int(round(self.window_sec * self.sampling_rate))
        window = max(1, min(window, n))
        if odd and window % 2 == 0:
            window -= 1  # 确保为奇数且不超过信号长度
        return max(1, window)

    def _moving_average_baseline(self, signal_data: np.ndarray) -> np.ndarray:
        """
        居中滑动平均基线

        边界使用最近值延拓 (mode='nearest'), 避免首尾被拉向零

        Args:
            signal_data: 输入信号

        Returns:
            基线
        """
        window = self._window_samples(len(signal_data))
        baseline = ndimage.uniform_filter1d(signal_data, size=window, mode='nearest')

        logger.debug(f"滑动平均基线: window={window}, "
                     f"baseline_range=[{baseline.min():.3f}, {baseline.max():.3f}]")

        return baseline

    def _median_baseline(self, signal_data: np.ndarray) -> np.ndarray:
        """
        中值滤波基线

        两阶段中值滤波:
        1. 短窗口去除QRS波群: 200ms
        2. 长窗口平滑基线: 600ms
        """
        n = len(signal_data)

        window1 = int(0.2 * self.sampling_rate)
        window1 = max(1, min(window1 + (1 - window1 % 2), n))
        median1 = ndimage.median_filter(signal_data, size=window1, mode='nearest')

        window2 = int(0.6 * self.sampling_rate)
        window2 = max(1, min(window2 + (1 - window2 % 2), n))
        return ndimage.median_filter(median1, size=window2, mode='nearest')

    def _wavelet_baseline(self, signal_data: np.ndarray, wavelet: str = 'db4') -> np.ndarray:
        """
        小波分解基线

        保留高层近似系数重构基线, 分解层数按采样率选择,
        使近似系数频带上限约为 cutoff_hz:
        fs / 2^(level+1) ≈ cutoff_hz

        信号过短无法分解时退化为去均值
        """
        max_level = pywt.dwt_max_level(len(signal_data), pywt.Wavelet(wavelet).dec_len)
        level = int(np.floor(np.log2(self.sampling_rate / self.cutoff_hz))) if self.cutoff_hz > 0 else max_level
        level = min(level, max_level)

        if level < 1:
            logger.debug(f"信号过短, 小波分解不可用 (max_level={max_level}), 使用去均值")
            return np.full_like(signal_data, np.mean(signal_data))

        coeffs = pywt.wavedec(signal_data, wavelet, level=level)
        baseline_coeffs = [coeffs[0]] + [np.zeros_like(c) for c in coeffs[1:]]

        return pywt.waverec(baseline_coeffs, wavelet)[:len(signal_data)]

    def _highpass_baseline(self, signal_data: np.ndarray, order: int = 2) -> np.ndarray:
        """
        高通滤波基线

        零相位Butterworth高通, 基线 = 原信号 - 高通信号
        """
        nyquist = self.sampling_rate / 2
        normalized_cutoff = self.cutoff_hz / nyquist

        # 确保截止频率有效
        if normalized_cutoff >= 1:
            normalized_cutoff = 0.99
        if normalized_cutoff <= 0:
            normalized_cutoff = 0.01

        b, a = signal.butter(order, normalized_cutoff, btype='highpass')

        padlen = min(3 * max(len(a), len(b)), len(signal_data) - 1)
        corrected = signal.filtfilt(b, a, signal_data, padlen=padlen)

        return signal_data - corrected
