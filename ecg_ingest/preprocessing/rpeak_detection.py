"""
R峰检测模块
===========

Pan-Tompkins算法 (在基线校正后的cleaned信号上检测)

数学原理:
---------
Pan-Tompkins算法流程:
1. 带通滤波 (5-15Hz): y[n] = x[n] * h_bp[n]
2. 微分运算: y'[n] = (1/8T)(-y[n-2] - 2y[n-1] + 2y[n+1] + y[n+2])
3. 平方运算: y''[n] = (y'[n])^2
4. 移动窗口积分: y'''[n] = (1/N)∑y''[n-k],  N ≈ 150ms
5. 自适应阈值检测 (SPKI / NPKI) + 漏检回溯
6. 不应期约束: 200ms内只保留幅值较大的峰 (上限约300bpm)
"""

import numpy as np
from scipy import signal
from typing import Tuple, List, Optional
from loguru import logger


class RPeakDetector:
    """
    ECG R峰检测器

    输出严格递增且位于 [0, len(signal)) 内的索引;
    近似常数信号或短于积分窗口/微分核的信号返回空数组

    Attributes:
        sampling_rate: 采样率 (Hz)
        bandpass: 带通频带 (Hz)
        integration_window: 积分窗口 (秒)
        refractory_period: 不应期 (秒)
    """

    # 五点微分: H(z) = (1/8T)(-z^{-2} - 2z^{-1} + 2z + z^2)
    DIFF_KERNEL = np.array([-1, -2, 0, 2, 1]) / 8

    def __init__(
        self,
        sampling_rate: float = 250.0,
        bandpass: Tuple[float, float] = (5.0, 15.0),
        filter_order: int = 2,
        integration_window: float = 0.15,
        refractory_period: float = 0.2,
        search_window: float = 0.05,
        variance_epsilon: float = 1e-10
    ):
        """
        初始化R峰检测器

        Args:
            sampling_rate: 采样率
            bandpass: QRS能量带通频带 (低, 高)
            filter_order: Butterworth滤波器阶数
            integration_window: 移动窗口积分宽度 (秒), 近似QRS宽度
            refractory_period: 不应期 (秒)
            search_window: 在cleaned信号中精确定位R峰的半窗口 (秒)
            variance_epsilon: 判定信号为常数的标准差阈值
        """
        self.sampling_rate = sampling_rate
        self.bandpass = bandpass
        self.filter_order = filter_order
        self.integration_window = integration_window
        self.refractory_period = refractory_period
        self.search_window = search_window
        self.variance_epsilon = variance_epsilon

        # 漏检回溯: RR超过平均值的1.66倍时以低阈值重新搜索
        self.searchback_ratio = 1.66

        logger.debug(f"初始化R峰检测器: fs={sampling_rate}Hz, band={bandpass}Hz")

    @property
    def window_samples(self) -> int:
        return max(1, int(round(self.integration_window * self.sampling_rate)))

    @property
    def refractory_samples(self) -> int:
        return max(1, int(round(self.refractory_period * self.sampling_rate)))

    def detect(
        self,
        ecg_signal: np.ndarray,
        return_features: bool = False
    ) -> Tuple[np.ndarray, Optional[dict]]:
        """
        检测R峰位置

        Args:
            ecg_signal: 基线校正后的ECG信号
            return_features: 是否返回各阶段中间信号

        Returns:
            r_peaks: R峰索引数组 (int64, 严格递增)
            features: 检测特征 (可选)
        """
        ecg_signal = np.asarray(ecg_signal, dtype=np.float64)
        empty = np.array([], dtype=np.int64)

        # 'same'卷积的输出长度为 max(n, 核长度), 信号不能短于任一卷积核
        min_length = max(self.window_samples, len(self.DIFF_KERNEL))
        if len(ecg_signal) < min_length:
            logger.warning(f"信号长度 {len(ecg_signal)} 小于最小检测长度 "
                           f"{min_length}, 不检测R峰")
            return empty, ({} if return_features else None)

        scale = max(1.0, float(np.max(np.abs(ecg_signal))))
        if float(np.std(ecg_signal)) < self.variance_epsilon * scale:
            logger.warning("信号方差接近零, 不检测R峰")
            return empty, ({} if return_features else None)

        r_peaks, features = self._pan_tompkins(ecg_signal)

        logger.info(f"检测到 {len(r_peaks)} 个R峰")

        if return_features:
            features['r_peaks'] = r_peaks
            return r_peaks, features

        return r_peaks, None

    def _bandpass_filter(self, ecg_signal: np.ndarray) -> np.ndarray:
        """零相位Butterworth带通滤波"""
        nyquist = self.sampling_rate / 2
        low_cut = self.bandpass[0] / nyquist
        high_cut = min(self.bandpass[1], nyquist - 1) / nyquist

        if high_cut <= low_cut:
            high_cut = 0.99
            low_cut = 0.05

        b, a = signal.butter(self.filter_order, [low_cut, high_cut], btype='band')

        padlen = min(3 * max(len(a), len(b)), len(ecg_signal) - 1)
        return signal.filtfilt(b, a, ecg_signal, padlen=padlen)

    def _pan_tompkins(
        self,
        ecg_signal: np.ndarray
    ) -> Tuple[np.ndarray, dict]:
        """
        Pan-Tompkins算法

        Reference: Pan & Tompkins, IEEE TBME, 1985

        Args:
            ecg_signal: ECG信号

        Returns:
            R峰位置和特征字典
        """
        # Step 1: 带通滤波 (5-15Hz)
        filtered = self._bandpass_filter(ecg_signal)

        # Step 2: 五点微分
        differentiated = np.convolve(filtered, self.DIFF_KERNEL, mode='same')

        # Step 3: 平方
        squared = differentiated ** 2

        # Step 4: 移动窗口积分 (150ms窗口)
        window_size = self.window_samples
        integration_kernel = np.ones(window_size) / window_size
        integrated = np.convolve(squared, integration_kernel, mode='same')

        # Step 5: 自适应阈值检测
        candidates = self._adaptive_threshold_detection(integrated)

        # Step 6: 在cleaned信号中精确定位, 再施加不应期
        refined = self._refine_peaks(candidates, ecg_signal)
        r_peaks = self.enforce_refractory(refined, ecg_signal, self.refractory_samples)

        features = {
            'filtered': filtered,
            'differentiated': differentiated,
            'squared': squared,
            'integrated': integrated
        }

        return r_peaks, features

    def _adaptive_threshold_detection(self, integrated: np.ndarray) -> np.ndarray:
        """
        自适应双阈值检测

        维护两个自适应阈值:
        - SPKI: 信号峰值估计
        - NPKI: 噪声峰值估计
        - THR1 = NPKI + 0.25 * (SPKI - NPKI)  (高阈值)
        - THR2 = 0.5 * THR1  (低阈值, 用于漏检回溯)

        Args:
            integrated: 积分信号

        Returns:
            积分信号中的峰值索引
        """
        fs = self.sampling_rate

        # 初始化 (前2秒学习期)
        init = integrated[:max(1, int(2 * fs))]
        spki = np.max(init) * 0.5
        npki = np.mean(init) * 0.5
        threshold1 = npki + 0.25 * (spki - npki)
        threshold2 = 0.5 * threshold1

        peaks, _ = signal.find_peaks(integrated, distance=self.refractory_samples)

        r_peaks: List[int] = []
        noise_peaks: List[int] = []

        for peak in peaks:
            value = integrated[peak]

            # 漏检回溯: 距上一个R峰过久时, 在噪声峰中找超过低阈值的最大者
            if len(r_peaks) >= 2:
                rr_mean = np.mean(np.diff(r_peaks[-9:]))
                if peak - r_peaks[-1] > self.searchback_ratio * rr_mean:
                    missed = [
                        p for p in noise_peaks
                        if p - r_peaks[-1] >= self.refractory_samples
                        and peak - p >= self.refractory_samples
                        and integrated[p] > threshold2
                    ]
                    if missed:
                        best = max(missed, key=lambda p: integrated[p])
                        r_peaks.append(best)
                        spki = 0.25 * integrated[best] + 0.75 * spki
                        logger.debug(f"回溯找到漏检R峰: {best}")

            if value > threshold1:
                # 明确的R峰
                r_peaks.append(int(peak))
                spki = 0.125 * value + 0.875 * spki
            else:
                # 噪声峰
                noise_peaks.append(int(peak))
                npki = 0.125 * value + 0.875 * npki

            # 更新阈值
            threshold1 = npki + 0.25 * (spki - npki)
            threshold2 = 0.5 * threshold1

        return np.asarray(r_peaks, dtype=np.int64)

    def _refine_peaks(self, candidates: np.ndarray, ecg_signal: np.ndarray) -> np.ndarray:
        """在积分峰附近的cleaned信号中取最大值位置"""
        search = max(1, int(round(self.search_window * self.sampling_rate)))
        refined = []

        for peak in candidates:
            start = max(0, peak - search)
            end = min(len(ecg_signal), peak + search + 1)
            if start >= end:
                continue
            refined.append(int(np.argmax(ecg_signal[start:end])) + start)

        return np.asarray(refined, dtype=np.int64)

    @staticmethod
    def enforce_refractory(
        candidates: np.ndarray,
        ecg_signal: np.ndarray,
        min_distance: int
    ) -> np.ndarray:
        """
        不应期约束

        候选峰间距小于 min_distance 时只保留幅值较大的一个

        Args:
            candidates: 候选峰索引
            ecg_signal: 用于比较幅值的信号
            min_distance: 最小间距 (采样点)

        Returns:
            严格递增的峰索引
        """
        n = len(ecg_signal)
        candidates = sorted(set(int(i) for i in candidates if 0 <= i < n))

        kept: List[int] = []
        for idx in candidates:
            if not kept or idx - kept[-1] >= min_distance:
                kept.append(idx)
                continue

            # 间距过近: 保留幅值较大者
            if ecg_signal[idx] > ecg_signal[kept[-1]]:
                kept[-1] = idx

        return np.asarray(kept, dtype=np.int64)
