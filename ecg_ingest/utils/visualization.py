"""
可视化模块
==========

信号预览与R峰标记的可视化 (开发调试用)
"""

import numpy as np
import plotly.graph_objects as go
from plotly.subplots import make_subplots
from typing import Optional, Sequence

from ..summary import SignalPreview


class ECGVisualizer:
    """
    ECG可视化器

    根据 SignalPreview 生成交互式波形图
    """

    MEDICAL_COLORS = {
        'primary': '#1f77b4',      # 波形
        'secondary': '#2ca02c',    # 标准化波形
        'danger': '#d62728',       # R峰
        'background': '#ffffff',
        'grid': '#f4c7c3'          # 心电图纸网格
    }

    def __init__(self):
        self.colors = self.MEDICAL_COLORS

    def plot_preview(
        self,
        preview: SignalPreview,
        sampling_rate: float,
        r_peaks: Optional[Sequence[int]] = None,
        title: str = "ECG Preview"
    ) -> go.Figure:
        """
        绘制预览波形

        只标记落在预览范围内的R峰

        Args:
            preview: 截断后的预览
            sampling_rate: 采样率
            r_peaks: R峰位置
            title: 标题

        Returns:
            Plotly Figure
        """
        cleaned = np.asarray(preview.cleaned, dtype=np.float64)
        normalized = np.asarray(preview.normalized, dtype=np.float64)
        time = np.arange(len(cleaned)) / sampling_rate

        fig = make_subplots(
            rows=2, cols=1,
            shared_xaxes=True,
            subplot_titles=('Cleaned', 'Normalized'),
            vertical_spacing=0.08
        )

        fig.add_trace(go.Scatter(
            x=time,
            y=cleaned,
            mode='lines',
            name='Cleaned',
            line=dict(color=self.colors['primary'], width=1.2),
            hovertemplate='Time: %{x:.3f}s<br>Amplitude: %{y:.3f}<extra></extra>'
        ), row=1, col=1)

        fig.add_trace(go.Scatter(
            x=time,
            y=normalized,
            mode='lines',
            name='Normalized',
            line=dict(color=self.colors['secondary'], width=1.2)
        ), row=2, col=1)

        # R峰标记
        if r_peaks is not None:
            visible = np.asarray([p for p in r_peaks if 0 <= p < len(cleaned)], dtype=np.int64)
            if visible.size > 0:
                fig.add_trace(go.Scatter(
                    x=visible / sampling_rate,
                    y=cleaned[visible],
                    mode='markers',
                    name='R-peaks',
                    marker=dict(color=self.colors['danger'], size=8, symbol='triangle-up')
                ), row=1, col=1)

        fig.update_layout(
            title=dict(text=title),
            template='plotly_white',
            paper_bgcolor=self.colors['background'],
            hovermode='x unified',
            height=600
        )
        fig.update_xaxes(title_text='Time (s)', gridcolor=self.colors['grid'], row=2, col=1)
        fig.update_yaxes(gridcolor=self.colors['grid'])

        return fig
