"""
ECG Waveform Ingestion - 心电波形摄取与预处理
=============================================

将上传的原始心电信号 (CSV / JSON 时间序列) 转换为结构化数值摘要:
清洗/标准化波形、R峰位置与估计心率

Author: ECG-Ingest Team
Version: 1.0.0
"""

__version__ = "1.0.0"
__author__ = "ECG-Ingest Team"

from .parsing import FileFormat, ParseError, Signal, detect_format
from .pipeline import ECGPipeline, PipelineConfig, PipelineOutput
from .summary import PreprocessResult, SignalPreview

__all__ = [
    'ECGPipeline',
    'PipelineConfig',
    'PipelineOutput',
    'FileFormat',
    'ParseError',
    'Signal',
    'PreprocessResult',
    'SignalPreview',
    'detect_format',
]
