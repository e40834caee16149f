"""
CSV信号解析
===========

每行一个样本, 行序即样本顺序:
- 忽略空行和以 '#' 开头的注释行
- 字段分隔符支持 ',' ';' 与制表符
- 首行若不含任何数值字面量则视为表头并跳过 (nan/inf 也算数值, 会在转换时报错)
- 多列时取第一个数值列 (可通过 column 指定列号或表头名)

任意一行无法解析为有限数值即整体失败, 不做静默跳过
"""

import re
from typing import List, Optional, Tuple, Union

import numpy as np
import pandas as pd
from loguru import logger

from .errors import ParseError, ParseOutcome
from .signal import Signal, validate_sample_rate


# 非有限数值字面量 (pandas把nan转换为NaN, 与无法解析的字段无法区分)
_NON_FINITE_LITERALS = {'nan', 'inf', 'infinity'}


def _to_numeric(tokens: List[Optional[str]]) -> np.ndarray:
    """按pandas规则转换字段, 无法解析的字段为NaN"""
    values = pd.to_numeric(pd.Series(tokens, dtype=object), errors='coerce')
    return values.to_numpy(dtype=np.float64, na_value=np.nan)


def _is_numeric_literal(tokens: List[str]) -> np.ndarray:
    """字段是否为数值字面量 (包括nan/inf等非有限值)"""
    parsed = ~np.isnan(_to_numeric(tokens))
    literal = np.array([t.lstrip('+-').lower() in _NON_FINITE_LITERALS for t in tokens], dtype=bool)
    return parsed | literal


class CSVParser:
    """
    CSV心电数据解析器

    Attributes:
        column: 幅值列 (列号或表头名, None表示第一个数值列)
        comment_prefix: 注释行前缀
    """

    DELIMITER_PATTERN = re.compile(r'[,;\t]')

    def __init__(
        self,
        column: Optional[Union[int, str]] = None,
        comment_prefix: str = '#'
    ):
        if isinstance(column, int) and column < 0:
            raise ValueError(f"列号不能为负: {column}")
        self.column = column
        self.comment_prefix = comment_prefix

    def parse(self, text: Union[str, bytes], sample_rate_hz: float) -> Signal:
        """
        解析CSV文本

        Args:
            text: CSV文本 (bytes按UTF-8解码)
            sample_rate_hz: 调用方提供的采样率

        Returns:
            Signal

        Raises:
            ParseError: 任意数据行无法解析
            ValueError: 采样率非法
        """
        sample_rate_hz = validate_sample_rate(sample_rate_hz)

        if isinstance(text, bytes):
            try:
                text = text.decode('utf-8-sig')
            except UnicodeDecodeError as e:
                raise ParseError(f"CSV内容不是有效的UTF-8文本: {e.reason}") from e
        text = text.lstrip("\ufeff")

        rows = self._split_rows(text)
        if not rows:
            logger.warning("CSV不包含任何数据行")
            return Signal(np.array([]), sample_rate_hz)

        header = None
        if not _is_numeric_literal(rows[0][1]).any():
            header = rows[0]
            rows = rows[1:]
            logger.debug(f"跳过表头 (第{header[0]}行): {header[1]}")

        if not rows:
            logger.warning("CSV仅包含表头")
            return Signal(np.array([]), sample_rate_hz)

        col = self._resolve_column(header, rows[0])
        samples = self._convert(rows, col)

        logger.info(f"CSV解析完成: {len(samples)} 个样本, 列={col}, fs={sample_rate_hz}Hz")

        return Signal(samples, sample_rate_hz)

    def try_parse(self, text: Union[str, bytes], sample_rate_hz: float) -> ParseOutcome:
        """解析CSV文本, 以ParseOutcome返回解析错误"""
        try:
            return ParseOutcome.ok(self.parse(text, sample_rate_hz))
        except ParseError as e:
            logger.warning(f"CSV解析失败: {e}")
            return ParseOutcome.err(e)

    def _split_rows(self, text: str) -> List[Tuple[int, List[str]]]:
        """切分为 (行号, 字段列表), 行号从1开始"""
        rows = []
        for line_no, line in enumerate(text.splitlines(), start=1):
            stripped = line.strip()
            if not stripped or stripped.startswith(self.comment_prefix):
                continue
            fields = [f.strip() for f in self.DELIMITER_PATTERN.split(stripped)]
            rows.append((line_no, fields))
        return rows

    def _resolve_column(
        self,
        header: Optional[Tuple[int, List[str]]],
        first_row: Tuple[int, List[str]]
    ) -> int:
        """确定幅值所在列"""
        if isinstance(self.column, int):
            return self.column

        if isinstance(self.column, str):
            if header is None:
                raise ParseError(f"CSV没有表头, 无法定位列 {self.column!r}")
            names = [name.lower() for name in header[1]]
            try:
                return names.index(self.column.lower())
            except ValueError:
                raise ParseError(f"表头中不存在列 {self.column!r}", index=header[0]) from None

        line_no, fields = first_row
        numeric = np.flatnonzero(_is_numeric_literal(fields))
        if numeric.size:
            return int(numeric[0])
        raise ParseError(f"无法解析为有限数值: {fields[0]!r}", index=line_no)

    def _convert(self, rows: List[Tuple[int, List[str]]], col: int) -> np.ndarray:
        """逐行取值并转为float64, 遇到第一处非法值即失败"""
        tokens = [fields[col] if col < len(fields) else None for _, fields in rows]

        values = _to_numeric(tokens)

        bad = np.flatnonzero(~np.isfinite(values))
        if bad.size:
            i = int(bad[0])
            line_no = rows[i][0]
            if tokens[i] is None:
                raise ParseError(f"缺少第{col + 1}列数据", index=line_no)
            raise ParseError(f"无法解析为有限数值: {tokens[i]!r}", index=line_no)

        return values
