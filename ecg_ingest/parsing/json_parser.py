"""
JSON信号解析
============

支持两种结构:
1. 纯数值数组: [0.12, 0.13, ...]
2. 对象: {"sampleRateHz": 500, "lead": "II", "samples": [...]}
   samples 中的元素可以是数值, 或 {"t": 秒(可选), "v": 幅值}

内嵌的 sampleRateHz 优先于调用方提供的采样率
"""

import json
import math
import numbers
from typing import Any, List, Optional, Tuple, Union

import numpy as np
from loguru import logger

from .errors import ParseError, ParseOutcome
from .signal import Signal, validate_sample_rate


def _as_finite_float(value: Any) -> Optional[float]:
    """数值且有限时返回float, 否则返回None (布尔值不视为数值)"""
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        return None
    try:
        value = float(value)
    except OverflowError:
        # 超出float范围的整数字面量
        return None
    if not math.isfinite(value):
        return None
    return value


class JSONParser:
    """
    JSON心电数据解析器

    Attributes:
        samples_key: 对象结构中样本数组的键名
        sample_rate_key: 对象结构中采样率的键名
    """

    def __init__(
        self,
        samples_key: str = 'samples',
        sample_rate_key: str = 'sampleRateHz'
    ):
        self.samples_key = samples_key
        self.sample_rate_key = sample_rate_key

    def parse(
        self,
        text: Union[str, bytes],
        sample_rate_hz: Optional[float] = None
    ) -> Signal:
        """
        解析JSON文本

        Args:
            text: JSON文本 (bytes按UTF-8解码)
            sample_rate_hz: 调用方提供的采样率, 被内嵌采样率覆盖

        Returns:
            Signal

        Raises:
            ParseError: 结构不合法或任意样本不是有限数值
            ValueError: 调用方提供的采样率不合法
        """
        if sample_rate_hz is not None:
            sample_rate_hz = validate_sample_rate(sample_rate_hz)

        if isinstance(text, bytes):
            try:
                text = text.decode('utf-8-sig')
            except UnicodeDecodeError as e:
                raise ParseError(f"JSON内容不是有效的UTF-8文本: {e.reason}") from e

        try:
            payload = json.loads(text)
        except json.JSONDecodeError as e:
            raise ParseError(f"JSON语法错误: {e.msg} (行 {e.lineno}, 列 {e.colno})") from e
        except ValueError as e:
            # 如超长整数字面量超出解释器的整数位数限制
            raise ParseError(f"JSON内容无法解析: {e}") from e

        lead = None
        if isinstance(payload, list):
            raw_samples = payload
        elif isinstance(payload, dict):
            raw_samples = payload.get(self.samples_key)
            if not isinstance(raw_samples, list):
                raise ParseError(f"JSON对象缺少 '{self.samples_key}' 数组")

            if payload.get(self.sample_rate_key) is not None:
                embedded = _as_finite_float(payload[self.sample_rate_key])
                if embedded is None or embedded <= 0:
                    raise ParseError(
                        f"内嵌采样率 '{self.sample_rate_key}' 必须为正的有限数: "
                        f"{payload[self.sample_rate_key]!r}"
                    )
                if sample_rate_hz is not None and embedded != sample_rate_hz:
                    logger.debug(f"内嵌采样率 {embedded}Hz 覆盖调用方采样率 {sample_rate_hz}Hz")
                sample_rate_hz = embedded

            lead = payload.get('lead')
            if lead is not None and not isinstance(lead, str):
                raise ParseError(f"'lead' 必须为字符串: {lead!r}")
        else:
            raise ParseError("JSON顶层必须是数组或对象")

        if sample_rate_hz is None:
            raise ParseError(f"JSON未提供 '{self.sample_rate_key}', 且调用方未指定采样率")
        sample_rate_hz = validate_sample_rate(sample_rate_hz)

        values, times = self._extract_samples(raw_samples)
        if times is not None:
            self._check_timestamps(times, sample_rate_hz)

        logger.info(f"JSON解析完成: {len(values)} 个样本, fs={sample_rate_hz}Hz, lead={lead}")

        return Signal(
            np.asarray(values, dtype=np.float64),
            sample_rate_hz,
            lead=lead,
            times=times
        )

    def try_parse(
        self,
        text: Union[str, bytes],
        sample_rate_hz: Optional[float] = None
    ) -> ParseOutcome:
        """解析JSON文本, 以ParseOutcome返回解析错误"""
        try:
            return ParseOutcome.ok(self.parse(text, sample_rate_hz))
        except ParseError as e:
            logger.warning(f"JSON解析失败: {e}")
            return ParseOutcome.err(e)

    def _extract_samples(
        self,
        raw_samples: List[Any]
    ) -> Tuple[List[float], Optional[Tuple[Optional[float], ...]]]:
        """逐个校验样本, 返回幅值列表和时间戳 (无对象样本时为None)"""
        values = []
        times = []
        has_times = False

        for i, item in enumerate(raw_samples):
            if isinstance(item, dict):
                v = _as_finite_float(item.get('v'))
                if v is None:
                    raise ParseError(f"样本 'v' 不是有限数值: {item.get('v')!r}", index=i)
                t = item.get('t')
                if t is not None:
                    t = _as_finite_float(t)
                    if t is None:
                        raise ParseError(f"样本 't' 不是有限数值: {item.get('t')!r}", index=i)
                    has_times = True
                values.append(v)
                times.append(t)
                continue

            v = _as_finite_float(item)
            if v is None:
                raise ParseError(f"样本不是有限数值: {item!r}", index=i)
            values.append(v)
            times.append(None)

        return values, (tuple(times) if has_times else None)

    @staticmethod
    def implied_sample_rate(times: Tuple[Optional[float], ...]) -> Optional[float]:
        """
        由样本时间戳推算采样率

        仅当每个样本都带时间戳且严格递增时有定义, 取相邻间隔的中位数

        Args:
            times: 每个样本的时间戳 (秒)

        Returns:
            推算的采样率 (Hz), 无法推算时为None
        """
        if len(times) < 2 or any(t is None for t in times):
            return None
        intervals = np.diff(np.asarray(times, dtype=np.float64))
        if np.any(intervals <= 0):
            return None
        return float(1.0 / np.median(intervals))

    def _check_timestamps(
        self,
        times: Tuple[Optional[float], ...],
        sample_rate_hz: float,
        tolerance: float = 0.05
    ):
        # 时间戳只用于一致性检查, 计算始终以采样率为准
        implied = self.implied_sample_rate(times)
        if implied is None:
            logger.warning("样本时间戳不完整或非递增, 忽略时间戳")
        elif abs(implied - sample_rate_hz) > tolerance * sample_rate_hz:
            logger.warning(f"时间戳推算采样率 {implied:.2f}Hz 与 {sample_rate_hz}Hz 不一致")
