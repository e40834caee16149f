#!/usr/bin/env python3
"""
ECG波形摄取 - 命令行入口
========================

对上传的CSV/JSON心电文件执行预处理管道

使用方法:
---------
1. 分析文件: python main.py analyze ecg.csv --sample-rate 250
2. 识别格式: python main.py detect ecg.json
3. 预览波形: python main.py plot ecg.csv --output preview.html
"""

import os
import sys
import json
import argparse
from typing import List, Optional

from loguru import logger

# 添加项目根目录到路径
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from ecg_ingest.parsing import ParseError, UnsupportedFormatError, detect_format
from ecg_ingest.pipeline import ECGPipeline, PipelineConfig
from ecg_ingest.utils.visualization import ECGVisualizer

# 调用方未指定采样率时使用的默认值, 显式传入管道
DEFAULT_SAMPLE_RATE_HZ = 250.0


def setup_logging(level: str = "INFO", log_dir: Optional[str] = "logs"):
    """
    配置日志

    控制台输出到stderr (stdout保留给JSON结果), 可选按天滚动的文件日志
    """
    logger.remove()
    logger.add(
        sys.stderr,
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{message}</cyan>",
        level=level
    )
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        logger.add(
            os.path.join(log_dir, "ecg_ingest_{time:YYYY-MM-DD}.log"),
            rotation="1 day",
            retention="7 days",
            level="DEBUG"
        )


def _read_upload(path: str) -> bytes:
    with open(path, 'rb') as f:
        return f.read()


def cmd_analyze(args) -> int:
    """执行完整管道并输出报告JSON"""
    pipeline = ECGPipeline(PipelineConfig(baseline_method=args.baseline))
    output = pipeline.process(
        _read_upload(args.file),
        filename=os.path.basename(args.file),
        content_type=args.content_type,
        sample_rate_hz=args.sample_rate
    )

    report = json.dumps(output.to_report_dict(), ensure_ascii=False, indent=2)

    if args.output:
        with open(args.output, 'w', encoding='utf-8') as f:
            f.write(report)
        logger.info(f"报告已保存: {args.output}")
    else:
        print(report)

    return 0


def cmd_detect(args) -> int:
    """输出识别到的上传格式"""
    print(detect_format(os.path.basename(args.file), args.content_type).value)
    return 0


def cmd_plot(args) -> int:
    """渲染预览波形为HTML"""
    pipeline = ECGPipeline(PipelineConfig(baseline_method=args.baseline))
    output = pipeline.process(
        _read_upload(args.file),
        filename=os.path.basename(args.file),
        content_type=args.content_type,
        sample_rate_hz=args.sample_rate
    )

    if output.preview is None:
        logger.error("图像上传没有可渲染的信号预览")
        return 1

    fig = ECGVisualizer().plot_preview(
        output.preview,
        sampling_rate=output.result.sample_rate_hz,
        r_peaks=output.result.r_peak_indices,
        title=os.path.basename(args.file)
    )
    fig.write_html(args.output)
    logger.info(f"预览已保存: {args.output}")

    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='ECG波形摄取与预处理',
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument('--log-level', default='INFO', help='控制台日志级别')
    parser.add_argument('--log-dir', default='logs', help='文件日志目录 (空字符串表示不写文件)')

    subparsers = parser.add_subparsers(dest='command', required=True)

    def add_upload_args(sub):
        sub.add_argument('file', help='上传文件路径')
        sub.add_argument('--content-type', default=None, help='声明的MIME类型')

    def add_pipeline_args(sub):
        sub.add_argument('--sample-rate', type=float, default=DEFAULT_SAMPLE_RATE_HZ,
                         help=f'采样率 Hz (默认 {DEFAULT_SAMPLE_RATE_HZ})')
        sub.add_argument('--baseline', default='moving_average',
                         choices=['moving_average', 'median', 'wavelet', 'highpass'],
                         help='基线校正方法')

    analyze = subparsers.add_parser('analyze', help='执行预处理管道并输出报告JSON')
    add_upload_args(analyze)
    add_pipeline_args(analyze)
    analyze.add_argument('--output', '-o', default=None, help='报告输出路径')
    analyze.set_defaults(func=cmd_analyze)

    detect = subparsers.add_parser('detect', help='识别上传格式')
    add_upload_args(detect)
    detect.set_defaults(func=cmd_detect)

    plot = subparsers.add_parser('plot', help='渲染预览波形为HTML')
    add_upload_args(plot)
    add_pipeline_args(plot)
    plot.add_argument('--output', '-o', required=True, help='HTML输出路径')
    plot.set_defaults(func=cmd_plot)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level, args.log_dir or None)

    try:
        return args.func(args)
    except (ParseError, UnsupportedFormatError, ValueError) as e:
        # ParseError / UnsupportedFormatError 均为 ValueError 子类, 采样率非法同样归为输入错误
        logger.error(str(e))
        print(f"error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
