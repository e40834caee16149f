import pytest

from ecg_ingest.parsing import JSONParser, ParseError


@pytest.fixture
def parser():
    return JSONParser()


def test_bare_array_uses_caller_rate(parser):
    signal = parser.parse("[0.1, 0.2, -0.3, 4]", 250)

    assert signal.samples.tolist() == [0.1, 0.2, -0.3, 4.0]
    assert signal.sample_rate_hz == 250.0


def test_embedded_rate_overrides_caller(parser):
    signal = parser.parse('{"sampleRateHz": 500, "samples": [1, 2, 3, 4]}', 250)

    assert signal.sample_rate_hz == 500.0
    assert signal.duration_sec == pytest.approx(4 / 500)


def test_object_samples_with_lead(parser):
    text = '{"sampleRateHz": 100, "lead": "II", "samples": [{"t": 0.0, "v": 0.5}, {"v": 0.7}, 0.9]}'
    signal = parser.parse(text)

    assert signal.lead == "II"
    assert signal.samples.tolist() == [0.5, 0.7, 0.9]
    assert signal.times == (0.0, None, None)


def test_non_numeric_element_raises(parser):
    with pytest.raises(ParseError) as exc_info:
        parser.parse('[0.1, 0.2, "oops", 0.4]', 250)

    assert exc_info.value.index == 2


@pytest.mark.parametrize("element", ["true", "null", "NaN", "Infinity", "[1]", '{"t": 1}'])
def test_invalid_elements_raise(parser, element):
    with pytest.raises(ParseError) as exc_info:
        parser.parse(f"[1, {element}]", 250)

    assert exc_info.value.index == 1


def test_try_parse_returns_no_partial_signal(parser):
    outcome = parser.try_parse('{"samples": [1, 2, "x"]}', 250)

    assert not outcome.is_ok
    assert outcome.signal is None
    assert outcome.error.index == 2


def test_invalid_json_syntax(parser):
    with pytest.raises(ParseError) as exc_info:
        parser.parse("[1, 2,", 250)

    assert exc_info.value.index is None


@pytest.mark.parametrize("text", ['{"data": [1, 2]}', '"text"', "42"])
def test_unexpected_structure(parser, text):
    with pytest.raises(ParseError):
        parser.parse(text, 250)


@pytest.mark.parametrize("rate", ["0", "-1", '"250"', "true"])
def test_invalid_embedded_rate(parser, rate):
    with pytest.raises(ParseError):
        parser.parse(f'{{"sampleRateHz": {rate}, "samples": [1]}}', 250)


def test_missing_rate_everywhere(parser):
    with pytest.raises(ParseError):
        parser.parse("[1, 2, 3]")


def test_bytes_input(parser):
    signal = parser.parse(b'{"sampleRateHz": 250, "samples": [1, 2]}')

    assert signal.sample_count == 2


def test_huge_integer_sample_raises_parse_error(parser):
    with pytest.raises(ParseError) as exc_info:
        parser.parse("[1, 1" + "0" * 400 + "]", 250)

    assert exc_info.value.index == 1


def test_huge_integer_sample_rate_raises_parse_error(parser):
    outcome = parser.try_parse('{"sampleRateHz": 1' + "0" * 400 + ', "samples": [1, 2]}', 250)

    assert not outcome.is_ok
    assert outcome.error.index is None


@pytest.mark.parametrize("rate", [0, -1, float("nan"), True])
def test_invalid_caller_rate_is_rejected_before_parsing(parser, rate):
    with pytest.raises(ValueError):
        parser.parse('{"sampleRateHz": 500, "samples": [1, 2]}', rate)


def test_timestamps_are_carried_on_signal(parser):
    signal = parser.parse('{"sampleRateHz": 4, "samples": '
                          '[{"t": 0, "v": 1}, {"t": 0.25, "v": 2}, {"t": 0.5, "v": 3}]}')

    assert signal.times == (0.0, 0.25, 0.5)
    assert JSONParser.implied_sample_rate(signal.times) == pytest.approx(4.0)


def test_mismatched_timestamps_keep_declared_rate(parser):
    signal = parser.parse('{"sampleRateHz": 250, "samples": '
                          '[{"t": 0, "v": 1}, {"t": 0.5, "v": 2}, {"t": 1.0, "v": 3}]}')

    assert signal.sample_rate_hz == 250.0
    assert JSONParser.implied_sample_rate(signal.times) == pytest.approx(2.0)


@pytest.mark.parametrize("times", [(0.0,), (0.0, None, 1.0), (0.0, 0.5, 0.5), (1.0, 0.0)])
def test_implied_sample_rate_undefined(times):
    assert JSONParser.implied_sample_rate(times) is None
