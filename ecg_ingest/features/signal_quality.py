"""
信号质量评估
============

在AI解读前根据数值摘要给出质量评分 (0-100) 与问题列表

扣分项:
- 时长: <2s 问题(-30), <5s 警告(-10)
- 采样率: <200Hz 问题(-20), <500Hz 警告(-5)
- 幅值范围 (cleaned): <0.1 问题(-25), <0.5 警告(-10)
- R峰: <2个 问题(-30); RR变异系数 >0.2 警告(-5)
- 心率: <30 或 >250 问题(-20), <40 或 >200 警告(-5)

等级: excellent ≥85, good ≥70, fair ≥50, poor ≥30, 其余 unusable
"""

from dataclasses import dataclass, field, asdict
from typing import Dict, List

import numpy as np
from loguru import logger

from ..summary import PreprocessResult


@dataclass(frozen=True)
class SignalQuality:
    """信号质量评估结果"""
    overall: str
    score: int
    issues: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return asdict(self)


class SignalQualityAssessor:
    """
    信号质量评估器

    Usage:
        quality = SignalQualityAssessor().assess(result)
    """

    GRADES = [
        (85, 'excellent'),
        (70, 'good'),
        (50, 'fair'),
        (30, 'poor'),
    ]

    def assess(self, result: PreprocessResult) -> SignalQuality:
        """
        评估信号质量

        Args:
            result: 预处理摘要

        Returns:
            SignalQuality
        """
        issues: List[str] = []
        warnings: List[str] = []
        score = 100

        # 时长
        if result.duration_sec < 2:
            issues.append("Signal duration too short (<2 seconds)")
            score -= 30
        elif result.duration_sec < 5:
            warnings.append("Short signal duration (<5 seconds)")
            score -= 10

        # 采样率
        if result.sample_rate_hz < 200:
            issues.append("Low sample rate (<200 Hz) may affect accuracy")
            score -= 20
        elif result.sample_rate_hz < 500:
            warnings.append("Moderate sample rate (<500 Hz)")
            score -= 5

        # 幅值范围
        amplitude_range = result.max - result.min
        if amplitude_range < 0.1:
            issues.append("Very low signal amplitude - possible poor contact or artifact")
            score -= 25
        elif amplitude_range < 0.5:
            warnings.append("Low signal amplitude")
            score -= 10

        # R峰
        if len(result.r_peak_indices) < 2:
            issues.append("Insufficient R-peaks detected - cannot determine rhythm")
            score -= 30
        else:
            rr = np.diff(result.r_peak_indices) / result.sample_rate_hz
            if rr.size > 1:
                cv = float(np.std(rr) / np.mean(rr))
                if cv > 0.2:
                    warnings.append("High R-R interval variability - possible arrhythmia or artifact")
                    score -= 5

        # 心率合理性
        hr = result.estimated_heart_rate_bpm
        if hr is not None:
            if hr < 30 or hr > 250:
                issues.append(f"Implausible heart rate: {hr} bpm")
                score -= 20
            elif hr < 40 or hr > 200:
                warnings.append(f"Unusual heart rate: {hr} bpm")
                score -= 5

        overall = 'unusable'
        for threshold, grade in self.GRADES:
            if score >= threshold:
                overall = grade
                break

        logger.debug(f"信号质量: {overall} ({score}), "
                     f"{len(issues)} 个问题, {len(warnings)} 个警告")

        return SignalQuality(overall=overall, score=score, issues=issues, warnings=warnings)
