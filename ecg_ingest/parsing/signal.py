"""
原始信号数据结构
"""

import math
from dataclasses import dataclass, field
from typing import Optional, Tuple

import numpy as np


def validate_sample_rate(sample_rate_hz) -> float:
    """校验采样率为正的有限数, 返回float"""
    if isinstance(sample_rate_hz, bool):
        raise ValueError(f"采样率必须为正的有限数: {sample_rate_hz!r}")
    try:
        value = float(sample_rate_hz)
    except (TypeError, ValueError, OverflowError):
        raise ValueError(f"采样率必须为正的有限数: {sample_rate_hz!r}") from None
    if not math.isfinite(value) or value <= 0:
        raise ValueError(f"采样率必须为正的有限数: {sample_rate_hz!r}")
    return value


@dataclass(frozen=True, eq=False)
class Signal:
    """
    解析后的心电信号

    Attributes:
        samples: 幅值序列 (只读float64数组)
        sample_rate_hz: 采样率 (Hz, > 0)
        lead: 导联名称 (可选)
        times: 每个样本的时间戳 (秒, 可选, 仅JSON对象样本提供; 解析时仅用于与采样率的一致性检查)
    """

    samples: np.ndarray
    sample_rate_hz: float
    lead: Optional[str] = None
    times: Optional[Tuple[Optional[float], ...]] = field(default=None, repr=False)

    def __post_init__(self):
        samples = np.array(self.samples, dtype=np.float64).reshape(-1)
        samples.setflags(write=False)
        object.__setattr__(self, 'samples', samples)
        object.__setattr__(self, 'sample_rate_hz', validate_sample_rate(self.sample_rate_hz))

    @property
    def sample_count(self) -> int:
        return int(self.samples.size)

    @property
    def duration_sec(self) -> float:
        return self.sample_count / self.sample_rate_hz

    def __len__(self) -> int:
        return self.sample_count
