import pytest

from plant_doctor.core.errors import ParseError
from plant_doctor.core.models import AnalysisResult, Severity
from plant_doctor.diagnosis.parsing import extract_json_object, parse_diagnosis


LEAF_BLIGHT = (
    '{"disease":"Leaf Blight","severity":"High","confidence":92,'
    '"recommendations":["Remove affected leaves","Apply copper fungicide"]}'
)


def test_parses_plain_json_reply():
    result = parse_diagnosis(LEAF_BLIGHT)

    assert result == AnalysisResult(
        condition="Leaf Blight",
        severity=Severity.HIGH,
        confidence=92.0,
        recommendations=("Remove affected leaves", "Apply copper fungicide"),
    )
    assert not result.is_healthy


def test_extracts_json_wrapped_in_prose_and_markdown():
    text = f"Sure! Here is the diagnosis:\n```json\n{LEAF_BLIGHT}\n```\nLet me know if you need more."

    result = parse_diagnosis(text)

    assert result.condition == "Leaf Blight"
    assert result.recommendations == ("Remove affected leaves", "Apply copper fungicide")


def test_extract_takes_outermost_object_span():
    text = 'x {"a": {"b": 1}} y'
    assert extract_json_object(text) == '{"a": {"b": 1}}'


def test_no_json_raises_parse_error_with_raw_text():
    text = "I cannot determine a diagnosis."

    with pytest.raises(ParseError) as e:
        parse_diagnosis(text)

    assert e.value.code == "parse_error"
    assert e.value.raw_text == text


def test_diagnosis_followed_by_braces_in_prose_still_parses():
    text = f"{LEAF_BLIGHT}\nNote: keys follow the format {{disease, severity}}."

    result = parse_diagnosis(text)

    assert result.condition == "Leaf Blight"
    assert result.confidence == 92.0
    assert extract_json_object(text) == LEAF_BLIGHT


def test_first_complete_object_wins():
    result = parse_diagnosis('{"disease": "Rust"} and later {"disease": "Scab"}')
    assert result.condition == "Rust"


def test_leading_stray_brace_is_skipped():
    text = "Format: {disease, severity}. Answer: " + LEAF_BLIGHT
    assert parse_diagnosis(text).condition == "Leaf Blight"


@pytest.mark.parametrize("text", ["", "{not json at all}", "{'single': 'quotes'}", "{\"disease\": \"Rust\""])
def test_malformed_json_raises_parse_error(text):
    with pytest.raises(ParseError):
        parse_diagnosis(text)


@pytest.mark.parametrize("raw,expected", [("high", Severity.HIGH), ("MEDIUM", Severity.MEDIUM), (" low ", Severity.LOW)])
def test_severity_is_case_insensitive(raw, expected):
    result = parse_diagnosis(f'{{"disease": "Rust", "severity": "{raw}"}}')
    assert result.severity is expected


def test_unknown_severity_becomes_absent():
    result = parse_diagnosis('{"disease": "Rust", "severity": "Critical"}')
    assert result.severity is None
    assert result.condition == "Rust"


@pytest.mark.parametrize("raw,expected", [("87.5", 87.5), ('"64%"', 64.0), ("0", 0.0), ("100", 100.0)])
def test_confidence_is_read_as_number(raw, expected):
    result = parse_diagnosis(f'{{"confidence": {raw}}}')
    assert result.confidence == expected


@pytest.mark.parametrize("raw", ["150", "-1", '"very"', "true", "null"])
def test_unusable_confidence_becomes_absent(raw):
    assert parse_diagnosis(f'{{"confidence": {raw}}}').confidence is None


def test_missing_keys_map_to_absent_fields():
    result = parse_diagnosis("{}")

    assert result == AnalysisResult()
    assert result.recommendations == ()


def test_unrecognized_keys_are_ignored():
    result = parse_diagnosis('{"disease": "Mildew", "affected_area": "40%", "notes": {"x": 1}}')
    assert result == AnalysisResult(condition="Mildew")


def test_condition_falls_back_to_condition_then_pest_key():
    assert parse_diagnosis('{"condition": "Chlorosis"}').condition == "Chlorosis"
    assert parse_diagnosis('{"pest": "Aphids"}').condition == "Aphids"
    assert parse_diagnosis('{"disease": "", "pest": "Aphids"}').condition == "Aphids"
    assert parse_diagnosis('{"disease": "Scab", "pest": "Aphids"}').condition == "Scab"


def test_recommendations_keep_order_and_drop_blanks():
    result = parse_diagnosis('{"recommendations": ["Prune", "", null, "Water less", "  Mulch  "]}')
    assert result.recommendations == ("Prune", "Water less", "Mulch")


def test_single_string_recommendation_becomes_one_item():
    assert parse_diagnosis('{"recommendations": "Water less"}').recommendations == ("Water less",)


def test_healthy_marker():
    result = parse_diagnosis('{"disease": "healthy", "severity": "Low", "confidence": 95}')
    assert result.is_healthy
