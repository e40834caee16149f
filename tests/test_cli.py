import json

import pytest
from loguru import logger

import main as cli

from .conftest import to_csv_text


@pytest.fixture(autouse=True)
def reset_logger():
    yield
    logger.remove()


@pytest.fixture
def csv_file(tmp_path, ecg_75bpm):
    ecg, _ = ecg_75bpm
    path = tmp_path / "ecg.csv"
    path.write_text(to_csv_text(ecg))
    return path


def test_analyze_prints_report(csv_file, capsys):
    code = cli.main(['--log-dir', '', 'analyze', str(csv_file), '--sample-rate', '250'])

    assert code == 0
    report = json.loads(capsys.readouterr().out)
    assert report['format'] == 'csv'
    assert report['preprocess']['sampleCount'] == 2500
    assert abs(report['preprocess']['estimatedHeartRateBpm'] - 75) <= 5


def test_analyze_writes_output_file(csv_file, tmp_path):
    out = tmp_path / "report.json"

    code = cli.main(['--log-dir', '', 'analyze', str(csv_file), '-o', str(out)])

    assert code == 0
    assert json.loads(out.read_text(encoding='utf-8'))['preprocess']['sampleRateHz'] == 250.0


def test_detect(tmp_path, capsys):
    path = tmp_path / "trace.bin"
    path.write_bytes(b"{}")

    code = cli.main(['--log-dir', '', 'detect', str(path), '--content-type', 'application/json'])

    assert code == 0
    assert capsys.readouterr().out.strip() == 'json'


def test_parse_error_exit_status(tmp_path, capsys):
    path = tmp_path / "bad.csv"
    path.write_text("value\n1.0\nabc\n")

    code = cli.main(['--log-dir', '', 'analyze', str(path)])

    assert code == 2
    assert 'error:' in capsys.readouterr().err


def test_unsupported_format_exit_status(tmp_path):
    path = tmp_path / "notes.txt"
    path.write_text("1\n2\n")

    assert cli.main(['--log-dir', '', 'analyze', str(path)]) == 2


def test_plot_writes_html(csv_file, tmp_path):
    out = tmp_path / "preview.html"

    code = cli.main(['--log-dir', '', 'plot', str(csv_file), '-o', str(out)])

    assert code == 0
    assert out.exists()


def test_plot_image_upload(tmp_path):
    path = tmp_path / "scan.png"
    path.write_bytes(b"\x89PNG\r\n")

    assert cli.main(['--log-dir', '', 'plot', str(path), '-o', str(tmp_path / "x.html")]) == 1
