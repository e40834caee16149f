import json

import numpy as np
import pytest

from ecg_ingest import ECGPipeline, FileFormat, ParseError, PipelineConfig, Signal
from ecg_ingest.parsing import UnsupportedFormatError

from .conftest import to_csv_text


@pytest.fixture
def pipeline():
    return ECGPipeline()


def test_csv_75bpm_accuracy(pipeline, csv_75bpm):
    output = pipeline.process(csv_75bpm.encode(), "ecg.csv", "text/csv", sample_rate_hz=250)
    result = output.result

    assert output.format is FileFormat.CSV
    assert result.sample_count == 2500
    assert result.estimated_heart_rate_bpm == pytest.approx(75, abs=5)


def test_duration_and_peak_invariants(pipeline, synthetic_ecg):
    ecg, _ = synthetic_ecg(fs=360, bpm=110, noise=0.03, duration=7.3)
    result = pipeline.process_signal(Signal(ecg, 360)).result
    peaks = np.asarray(result.r_peak_indices)

    assert result.duration_sec == pytest.approx(result.sample_count / result.sample_rate_hz)
    assert np.all(np.diff(peaks) > 0)
    assert np.all((peaks >= 0) & (peaks < result.sample_count))


def test_pipeline_is_deterministic(pipeline, csv_75bpm):
    content = csv_75bpm.encode()

    first = pipeline.process(content, "ecg.csv", None, 250)
    second = ECGPipeline().process(content, "ecg.csv", None, 250)

    assert first.result.to_json() == second.result.to_json()
    assert first.preview == second.preview


def test_all_zero_signal(pipeline):
    output = pipeline.process_signal(Signal(np.zeros(1000), 250))

    assert output.result.r_peak_indices == ()
    assert output.result.estimated_heart_rate_bpm is None
    assert output.result.to_dict()["estimatedHeartRateBpm"] is None


def test_json_upload_uses_embedded_rate(pipeline, synthetic_ecg):
    ecg, _ = synthetic_ecg(fs=500, bpm=60)
    payload = json.dumps({"sampleRateHz": 500, "lead": "II", "samples": ecg.tolist()})

    output = pipeline.process(payload, "trace.json", "application/json", sample_rate_hz=250)

    assert output.signal.lead == "II"
    assert output.result.sample_rate_hz == 500.0
    assert output.result.estimated_heart_rate_bpm == pytest.approx(60, abs=5)


def test_malformed_json_produces_no_signal(pipeline):
    with pytest.raises(ParseError) as exc_info:
        pipeline.process(b"[0.1, 0.2, \"bad\"]", "trace.json", None, 250)

    assert exc_info.value.index == 2


def test_image_upload_returns_sentinel(pipeline):
    output = pipeline.process(b"\x89PNG\r\n", "scan.png", "image/png")

    assert output.format is FileFormat.IMAGE
    assert output.signal is None
    assert output.preview is None
    assert output.result.to_dict()["sampleCount"] == 0
    assert output.to_report_dict()["preprocess"]["rPeakIndices"] == []


def test_undetected_format(pipeline):
    with pytest.raises(UnsupportedFormatError) as exc_info:
        pipeline.process(b"1\n2\n", "ecg.txt", "text/plain", 250)

    assert ".csv" in str(exc_info.value)


def test_csv_requires_explicit_sample_rate(pipeline):
    with pytest.raises(ValueError):
        pipeline.process(b"1\n2\n", "ecg.csv", None, None)


def test_report_dict(pipeline, csv_75bpm):
    report = pipeline.process(csv_75bpm, "ecg.csv", None, 250).to_report_dict()

    assert report["format"] == "csv"
    assert len(report["signalPreview"]["cleaned"]) == 2000
    assert report["quality"]["overall"] in {"excellent", "good", "fair", "poor", "unusable"}
    json.dumps(report)


def test_analysis_context(pipeline, ecg_75bpm):
    ecg, _ = ecg_75bpm
    output = pipeline.process_signal(Signal(ecg, 250))

    assert output.context["rPeakIndices"] == list(output.result.r_peak_indices)
    assert output.context["rrMean"] == pytest.approx(0.8, abs=0.01)


@pytest.mark.parametrize("method", ["moving_average", "median", "wavelet", "highpass"])
def test_baseline_methods_end_to_end(method, ecg_75bpm):
    ecg, _ = ecg_75bpm
    output = ECGPipeline(PipelineConfig(baseline_method=method)).process_signal(Signal(ecg, 250))

    assert output.result.estimated_heart_rate_bpm == pytest.approx(75, abs=5)


def test_tiny_signals_do_not_raise(pipeline):
    for samples in ([], [1.0], [1.0, -1.0], list(np.sin(np.arange(30)))):
        output = pipeline.process_signal(Signal(samples, 250))
        assert output.result.sample_count == len(samples)
        assert output.result.estimated_heart_rate_bpm is None or output.result.estimated_heart_rate_bpm > 0


def test_csv_header_and_round_trip(pipeline):
    values = np.linspace(0, 1, 321)
    output = pipeline.process(to_csv_text(values), "x.CSV", None, 250)

    assert output.result.sample_count == 321


@pytest.mark.parametrize("method", ["moving_average", "median", "wavelet", "highpass"])
@pytest.mark.parametrize("fs", [0.5, 1, 2, 13])
def test_tiny_low_rate_signals_do_not_raise(method, fs):
    pipeline = ECGPipeline(PipelineConfig(baseline_method=method))

    for n in (2, 3, 5, 8):
        samples = np.random.RandomState(n).normal(size=n)
        result = pipeline.process_signal(Signal(samples, fs)).result
        peaks = np.asarray(result.r_peak_indices)

        assert result.sample_count == n
        assert np.all((peaks >= 0) & (peaks < n))


def test_huge_json_number_is_a_parse_error(pipeline):
    with pytest.raises(ParseError):
        pipeline.process(b"[1, 1" + b"0" * 400 + b"]", "trace.json", None, 250)
