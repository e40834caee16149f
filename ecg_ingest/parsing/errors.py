"""
解析错误与结果类型
"""

from dataclasses import dataclass
from typing import Optional

from .formats import ACCEPTED_EXTENSIONS
from .signal import Signal


class ParseError(ValueError):
    """
    数值解析失败

    整个解析原子性失败, 不返回任何部分信号

    Attributes:
        index: 出错位置 (CSV为1起始的行号, JSON为0起始的样本下标,
               整体性错误为None)
        reason: 失败原因
    """

    def __init__(self, reason: str, index: Optional[int] = None):
        self.index = index
        self.reason = reason
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        if self.index is None:
            return self.reason
        return f"{self.reason} (位置 {self.index})"


class UnsupportedFormatError(ValueError):
    """上传格式无法识别"""

    def __init__(self, filename: Optional[str] = None, content_type: Optional[str] = None):
        self.filename = filename
        self.content_type = content_type
        accepted = ', '.join(ACCEPTED_EXTENSIONS)
        super().__init__(
            f"不支持的文件类型 (filename={filename!r}, content_type={content_type!r}). "
            f"请上传 {accepted} 文件"
        )


@dataclass(frozen=True)
class ParseOutcome:
    """
    解析结果: Ok(Signal) 或 Err(ParseError)

    Usage:
        outcome = CSVParser().try_parse(text, 250.0)
        if outcome.is_ok:
            signal = outcome.signal
    """

    signal: Optional[Signal] = None
    error: Optional[ParseError] = None

    @classmethod
    def ok(cls, signal: Signal) -> 'ParseOutcome':
        return cls(signal=signal)

    @classmethod
    def err(cls, error: ParseError) -> 'ParseOutcome':
        return cls(error=error)

    @property
    def is_ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> Signal:
        """返回信号, 失败时抛出ParseError"""
        if self.error is not None:
            raise self.error
        return self.signal
