"""
工具模块
========

包含可视化等工具函数
"""

from .visualization import ECGVisualizer

__all__ = ['ECGVisualizer']
