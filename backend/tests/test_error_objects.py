from facecast.services.error_objects import PROVIDER_ERROR_PREFIX, provider_error_message, to_error_object


def test_plain_message_is_workflow_error():
    assert to_error_object("face not detected") == {"kind": "workflow_error", "message": "face not detected"}


def test_provider_payload_round_trip_prefers_summary():
    raw = provider_error_message({
        "kind": "provider_error",
        "code": "PROVIDER_ERROR",
        "provider": "fal",
        "model": "fal-ai/test-model",
        "summary": "Video generation timed out after 800s",
        "details": "wait_for expired",
    })
    error = to_error_object(raw)
    assert error["kind"] == "provider_error"
    assert error["message"] == "Video generation timed out after 800s"
    assert error["provider"] == "fal"
    assert error["details"] == "wait_for expired"


def test_marker_in_middle_of_message():
    raw = "Workflow step failed: " + PROVIDER_ERROR_PREFIX + '{"details": "quota exceeded"}'
    error = to_error_object(raw)
    assert error["kind"] == "provider_error"
    assert error["message"] == "quota exceeded"


def test_unparseable_payload():
    error = to_error_object(PROVIDER_ERROR_PREFIX + "{not json")
    assert error == {"kind": "provider_error_parse_failed", "message": "{not json"}


def test_empty_payload_has_generic_message():
    error = to_error_object(PROVIDER_ERROR_PREFIX + "{}")
    assert error["message"] == "Provider video generation failed."


def test_non_string_payload_values_are_stringified_or_dropped():
    error = to_error_object(PROVIDER_ERROR_PREFIX + '{"code": 429, "summary": "rate", "details": {"retry": 5}, "kind": ["x"]}')
    assert error["kind"] == "provider_error"
    assert error["code"] == "429"
    assert error["details"] is None
    assert error["message"] == "rate"
