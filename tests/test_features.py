import numpy as np
import pytest

from ecg_ingest.features import RRFeatureExtractor, SignalQualityAssessor
from ecg_ingest.summary import PreprocessResult


def make_result(**overrides):
    fields = dict(
        sample_rate_hz=500.0,
        sample_count=5000,
        duration_sec=10.0,
        mean=0.0,
        std=0.3,
        min=-0.5,
        max=1.2,
        r_peak_indices=tuple(range(200, 5000, 400)),
        estimated_heart_rate_bpm=75.0,
    )
    fields.update(overrides)
    return PreprocessResult(**fields)


class TestSignalQuality:

    def test_clean_recording_is_excellent(self):
        quality = SignalQualityAssessor().assess(make_result())

        assert quality.overall == 'excellent'
        assert quality.score == 100
        assert quality.issues == []
        assert quality.warnings == []

    def test_empty_result_is_unusable(self):
        quality = SignalQualityAssessor().assess(PreprocessResult.empty())

        assert quality.overall == 'unusable'
        assert quality.score < 30
        assert len(quality.issues) >= 3

    def test_short_low_rate_recording(self):
        result = make_result(sample_rate_hz=250.0, sample_count=1000, duration_sec=4.0,
                             r_peak_indices=(100, 300, 500, 700, 900))
        quality = SignalQualityAssessor().assess(result)

        assert quality.score == 100 - 10 - 5
        assert quality.overall == 'excellent'
        assert len(quality.warnings) == 2

    def test_irregular_rhythm_warning(self):
        quality = SignalQualityAssessor().assess(make_result(r_peak_indices=(0, 100, 600, 700, 1500)))

        assert any('variability' in w for w in quality.warnings)

    def test_implausible_heart_rate(self):
        quality = SignalQualityAssessor().assess(make_result(estimated_heart_rate_bpm=280.0))

        assert quality.score == 80
        assert quality.overall == 'good'

    def test_to_dict(self):
        data = SignalQualityAssessor().assess(make_result()).to_dict()

        assert set(data) == {'overall', 'score', 'issues', 'warnings'}


class TestRRFeatures:

    def test_regular_rhythm(self, ecg_75bpm):
        ecg, peaks = ecg_75bpm
        features = RRFeatureExtractor(sampling_rate=250).extract(ecg, peaks)

        assert features['rrIntervals'] == pytest.approx([0.8] * (len(peaks) - 1))
        assert features['rrMean'] == pytest.approx(0.8)
        assert features['rrStd'] == pytest.approx(0.0, abs=1e-12)
        assert features['timeDomain']['pnn50'] == 0.0
        assert len(features['signalSegments']) == 10

    def test_segments_are_clipped(self):
        signal = np.arange(100, dtype=float)
        features = RRFeatureExtractor(sampling_rate=100).extract(signal, np.array([5, 98]))

        first, last = features['signalSegments']
        assert first['start'] == 0 and first['end'] == 25
        assert last['start'] == 78 and last['end'] == 99
        assert len(last['samples']) == 22

    def test_time_domain_values(self):
        rr_ms = np.array([800.0, 900.0, 800.0])
        td = RRFeatureExtractor(sampling_rate=250).extract_time_domain(rr_ms)

        assert td['rmssd'] == pytest.approx(100.0)
        assert td['pnn50'] == pytest.approx(100.0)
        assert td['sdnn'] == pytest.approx(np.std(rr_ms, ddof=1))

    def test_empty_input_has_no_nan(self):
        features = RRFeatureExtractor(sampling_rate=250).extract(np.array([]), np.array([]))

        assert features['rPeakIndices'] == []
        assert features['rrMean'] == 0.0
        assert features['signalSegments'] == []
        assert all(v == 0.0 for v in features['statisticalFeatures'].values())

    def test_constant_signal_statistics(self):
        stats = RRFeatureExtractor(sampling_rate=250).extract_statistics(np.full(50, 2.0))

        assert stats['skewness'] == 0.0
        assert stats['kurtosis'] == 0.0
        assert stats['range'] == 0.0
