"""
信号解析模块
============

包含:
- 格式识别 (Format Detection)
- CSV解析 (CSV Parser)
- JSON解析 (JSON Parser)
"""

from .formats import FileFormat, detect_format, ACCEPTED_EXTENSIONS
from .signal import Signal
from .errors import ParseError, ParseOutcome, UnsupportedFormatError
from .csv_parser import CSVParser
from .json_parser import JSONParser

__all__ = [
    'FileFormat',
    'detect_format',
    'ACCEPTED_EXTENSIONS',
    'Signal',
    'ParseError',
    'ParseOutcome',
    'UnsupportedFormatError',
    'CSVParser',
    'JSONParser'
]
