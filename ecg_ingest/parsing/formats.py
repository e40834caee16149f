"""
上传格式识别
============

根据文件名与声明的MIME类型判断上传内容的格式:
1. 优先匹配扩展名 (大小写不敏感)
2. 扩展名缺失或无法识别时回退到MIME类型前缀匹配
"""

import os
from enum import Enum
from typing import Optional


class FileFormat(str, Enum):
    """上传格式 (封闭枚举)"""

    CSV = 'csv'
    JSON = 'json'
    IMAGE = 'image'
    UNDETECTED = 'undetected'


EXTENSION_MAP = {
    '.csv': FileFormat.CSV,
    '.json': FileFormat.JSON,
    '.png': FileFormat.IMAGE,
    '.jpg': FileFormat.IMAGE,
    '.jpeg': FileFormat.IMAGE,
}

ACCEPTED_EXTENSIONS = tuple(EXTENSION_MAP.keys())

# 前缀匹配, 顺序即优先级
MIME_PREFIXES = (
    ('text/csv', FileFormat.CSV),
    ('application/json', FileFormat.JSON),
    ('image/', FileFormat.IMAGE),
)


def detect_format(
    filename: Optional[str] = None,
    content_type: Optional[str] = None
) -> FileFormat:
    """
    识别上传格式

    Args:
        filename: 原始文件名
        content_type: 声明的MIME类型

    Returns:
        FileFormat, 无法识别时为 FileFormat.UNDETECTED
    """
    if filename:
        _, ext = os.path.splitext(filename.strip().lower())
        if ext in EXTENSION_MAP:
            return EXTENSION_MAP[ext]

    if content_type:
        mime = content_type.strip().lower()
        for prefix, fmt in MIME_PREFIXES:
            if mime.startswith(prefix):
                return fmt

    return FileFormat.UNDETECTED
