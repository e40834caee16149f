import plotly.graph_objects as go

from ecg_ingest.summary import SignalPreview
from ecg_ingest.utils import ECGVisualizer


def test_plot_preview_marks_visible_peaks():
    preview = SignalPreview(cleaned=(0.0, 1.0, 0.0, 1.0, 0.0), normalized=(-0.5, 1.5, -0.5, 1.5, -0.5))

    fig = ECGVisualizer().plot_preview(preview, sampling_rate=5, r_peaks=[1, 3, 40])

    assert isinstance(fig, go.Figure)
    assert len(fig.data) == 3
    markers = fig.data[2]
    assert list(markers.x) == [0.2, 0.6]
    assert list(markers.y) == [1.0, 1.0]


def test_plot_preview_without_peaks():
    preview = SignalPreview(cleaned=(0.0, 0.1), normalized=(-1.0, 1.0))

    fig = ECGVisualizer().plot_preview(preview, sampling_rate=250, title="x")

    assert len(fig.data) == 2
    assert fig.layout.title.text == "x"
