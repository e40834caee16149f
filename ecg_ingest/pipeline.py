"""
信号摄取管道
============

整合格式识别、解析、预处理、R峰检测、心率估计与摘要构建的统一接口

数据流:
原始字节 + 文件名/MIME -> 格式识别 -> 解析 -> Signal
-> 预处理 -> {cleaned, normalized, 统计量}
-> R峰检测 (cleaned) -> 心率估计 -> 摘要 -> PreprocessResult

每次调用都是纯函数式的同步计算, 不持有任何跨调用的可变状态
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

import numpy as np
from loguru import logger

from .parsing import (
    CSVParser,
    FileFormat,
    JSONParser,
    Signal,
    UnsupportedFormatError,
    detect_format,
)
from .preprocessing import HeartRateEstimator, Preprocessor, RPeakDetector
from .features import RRFeatureExtractor, SignalQuality, SignalQualityAssessor
from .summary import PREVIEW_LENGTH, PreprocessResult, SignalPreview, SummaryBuilder


@dataclass(frozen=True)
class PipelineConfig:
    """管道配置"""

    # 基线校正参数
    baseline_method: str = 'moving_average'
    baseline_window_sec: float = 0.75

    # R峰检测参数 (标准QRS检测默认值)
    bandpass_low_hz: float = 5.0
    bandpass_high_hz: float = 15.0
    filter_order: int = 2
    integration_window_sec: float = 0.15
    refractory_period_sec: float = 0.2
    search_window_sec: float = 0.05

    # 心率生理范围 (BPM)
    min_heart_rate_bpm: float = 20.0
    max_heart_rate_bpm: float = 300.0

    # 预览截断长度
    preview_length: int = PREVIEW_LENGTH

    # 常数信号判定阈值
    variance_epsilon: float = 1e-10


@dataclass(frozen=True)
class PipelineOutput:
    """管道输出"""

    format: FileFormat
    result: PreprocessResult
    signal: Optional[Signal] = None
    preview: Optional[SignalPreview] = None
    quality: Optional[SignalQuality] = None
    context: Optional[Dict[str, Any]] = None

    def to_report_dict(self) -> Dict[str, Any]:
        """报告记录中由本管道填充的字段"""
        report = {
            'format': self.format.value,
            'preprocess': self.result.to_dict(),
        }
        if self.preview is not None:
            report['signalPreview'] = self.preview.to_dict()
        if self.quality is not None:
            report['quality'] = self.quality.to_dict()
        return report


class ECGPipeline:
    """
    ECG摄取管道

    Usage:
        pipeline = ECGPipeline()
        output = pipeline.process(content, 'ecg.csv', 'text/csv', sample_rate_hz=250.0)
    """

    def __init__(self, config: Optional[PipelineConfig] = None):
        """
        初始化管道

        Args:
            config: 管道配置 (默认使用默认配置)
        """
        self.config = config if config else PipelineConfig()

        self.preprocessor = Preprocessor(
            baseline_method=self.config.baseline_method,
            baseline_window_sec=self.config.baseline_window_sec,
            variance_epsilon=self.config.variance_epsilon
        )
        self.summary_builder = SummaryBuilder(preview_length=self.config.preview_length)
        self.quality_assessor = SignalQualityAssessor()

    def process(
        self,
        content: Union[bytes, str],
        filename: Optional[str] = None,
        content_type: Optional[str] = None,
        sample_rate_hz: Optional[float] = None
    ) -> PipelineOutput:
        """
        处理一次上传

        Args:
            content: 上传的原始内容
            filename: 原始文件名
            content_type: 声明的MIME类型
            sample_rate_hz: 调用方提供的采样率 (CSV必需; JSON内嵌采样率优先)

        Returns:
            PipelineOutput

        Raises:
            UnsupportedFormatError: 无法识别的格式
            ParseError: 解析失败
        """
        file_format = detect_format(filename, content_type)
        logger.info(f"上传格式: {file_format.value} (filename={filename}, content_type={content_type})")

        if file_format is FileFormat.CSV:
            if sample_rate_hz is None:
                raise ValueError("CSV上传必须提供采样率")
            signal = CSVParser().parse(content, sample_rate_hz)
        elif file_format is FileFormat.JSON:
            signal = JSONParser().parse(content, sample_rate_hz)
        elif file_format is FileFormat.IMAGE:
            logger.info("图像上传不经过信号管道, 返回空摘要")
            return PipelineOutput(format=file_format, result=PreprocessResult.empty())
        elif file_format is FileFormat.UNDETECTED:
            raise UnsupportedFormatError(filename, content_type)
        else:
            raise AssertionError(f"未处理的格式: {file_format}")

        return self.process_signal(signal, file_format=file_format)

    def process_signal(
        self,
        signal: Signal,
        file_format: FileFormat = FileFormat.CSV
    ) -> PipelineOutput:
        """
        对已解析的信号执行完整的预处理流程

        处理步骤:
        1. 基线校正与标准化
        2. R峰检测
        3. 心率估计
        4. 摘要与预览
        5. 质量评估与分析上下文

        Args:
            signal: 解析后的信号
            file_format: 来源格式

        Returns:
            PipelineOutput
        """
        fs = signal.sample_rate_hz
        cfg = self.config

        logger.info(f"Step 1: 基线校正与标准化 (n={signal.sample_count}, fs={fs}Hz)")
        preprocessed = self.preprocessor.process(signal)

        logger.info("Step 2: R峰检测")
        if preprocessed.is_flat:
            r_peaks = np.array([], dtype=np.int64)
        else:
            detector = RPeakDetector(
                sampling_rate=fs,
                bandpass=(cfg.bandpass_low_hz, cfg.bandpass_high_hz),
                filter_order=cfg.filter_order,
                integration_window=cfg.integration_window_sec,
                refractory_period=cfg.refractory_period_sec,
                search_window=cfg.search_window_sec,
                variance_epsilon=cfg.variance_epsilon
            )
            r_peaks, _ = detector.detect(preprocessed.cleaned)

        logger.info("Step 3: 心率估计")
        estimator = HeartRateEstimator(
            sampling_rate=fs,
            min_bpm=cfg.min_heart_rate_bpm,
            max_bpm=cfg.max_heart_rate_bpm
        )
        heart_rate = estimator.estimate(r_peaks)

        logger.info("Step 4: 摘要构建")
        result = self.summary_builder.build(signal, preprocessed, r_peaks, heart_rate)
        preview = self.summary_builder.build_preview(preprocessed)

        quality = self.quality_assessor.assess(result)
        context = RRFeatureExtractor(sampling_rate=fs).extract(signal.samples, r_peaks)

        hr_text = f"{heart_rate} BPM" if heart_rate is not None else "未定义"
        logger.info(f"预处理完成: {len(r_peaks)} 个R峰, 心率 {hr_text}, "
                    f"质量 {quality.overall} ({quality.score})")

        return PipelineOutput(
            format=file_format,
            result=result,
            signal=signal,
            preview=preview,
            quality=quality,
            context=context
        )
