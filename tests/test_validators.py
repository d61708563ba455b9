from companion.core.validators import sanitize_text, validate_identifier, validate_message


def test_message_is_trimmed_and_control_characters_removed():
    is_valid, sanitized, error = validate_message("  Hello\x00 there  ")

    assert is_valid
    assert error is None
    assert sanitized == "Hello there"


def test_blank_messages_are_rejected():
    assert validate_message("   ")[0] is False
    assert validate_message(None)[0] is False


def test_sanitize_keeps_newlines():
    assert sanitize_text("line one\nline two") == "line one\nline two"


def test_identifiers():
    assert validate_identifier(None, "patientId") == (True, None)
    assert validate_identifier("0b9c6c1e-1c3f-4f7c-9a57-2d1f1f0f5b11", "patientId") == (True, None)
    assert validate_identifier("x; DROP TABLE", "patientId")[0] is False


def test_long_messages_are_accepted_whole():
    message = "a" * 10000

    is_valid, sanitized, error = validate_message(message)

    assert is_valid
    assert error is None
    assert sanitized == message
