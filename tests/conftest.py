import numpy as np
import pytest


def make_synthetic_ecg(
    fs=250.0,
    bpm=75.0,
    duration=10.0,
    first_beat=0.4,
    drift=0.3,
    noise=0.0,
    seed=0
):
    """
    合成ECG: 高斯形P/QRS/T波 + 0.25Hz基线漂移

    Returns:
        signal, R峰真实位置
    """
    n = int(duration * fs)
    t = np.arange(n) / fs
    period = 60.0 / bpm

    r_times = np.arange(first_beat, duration - 0.3, period)
    ecg = np.zeros(n)
    for r in r_times:
        ecg += 1.0 * np.exp(-((t - r) ** 2) / (2 * 0.012 ** 2))
        ecg += 0.1 * np.exp(-((t - r + 0.16) ** 2) / (2 * 0.025 ** 2))
        ecg += 0.2 * np.exp(-((t - r - 0.25) ** 2) / (2 * 0.04 ** 2))

    ecg += drift * np.sin(2 * np.pi * 0.25 * t)
    if noise:
        ecg += np.random.RandomState(seed).normal(0, noise, n)

    return ecg, np.round(r_times * fs).astype(int)


def to_csv_text(values, header="ecg_mv"):
    lines = [header] if header else []
    lines += [f"{v:.6f}" for v in values]
    return "\n".join(lines) + "\n"


@pytest.fixture
def synthetic_ecg():
    return make_synthetic_ecg


@pytest.fixture
def ecg_75bpm():
    return make_synthetic_ecg(fs=250.0, bpm=75.0)


@pytest.fixture
def csv_75bpm(ecg_75bpm):
    signal, _ = ecg_75bpm
    return to_csv_text(signal)
