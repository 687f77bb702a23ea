from __future__ import annotations

from pypassive._redact import redact_for_log


def test_redact_for_log_redacts_identifying_fields() -> None:
    row = {
        "date": 1700000000000,
        "number": "+31612345678",
        "cached_lookup_uri": "content://contacts/1",
        "nested": {"address": "0612345678", "body": "see you at 8"},
        "type": 1,
    }

    redacted = redact_for_log(row)
    assert redacted["number"] == "<redacted>"
    assert redacted["cached_lookup_uri"] == "<redacted>"
    assert redacted["nested"]["address"] == "<redacted>"
    assert redacted["nested"]["body"] == "<redacted>"
    assert redacted["date"] == 1700000000000
    assert redacted["type"] == 1


def test_redact_for_log_truncates_long_strings() -> None:
    long_value = "x" * 600
    redacted = redact_for_log({"value": long_value}, max_string=10)
    assert redacted["value"].startswith("x" * 10)
    assert "<truncated>" in redacted["value"]


def test_redact_for_log_summarizes_bytes() -> None:
    assert redact_for_log({"key": b"\x00" * 32}) == {"key": "<bytes:32b>"}


def test_redact_for_log_matches_camel_case_fields() -> None:
    redacted = redact_for_log({"cachedLookupUri": "content://x", "Latitude": 52.1, "relativeLatitude": 0.5})
    assert redacted == {"cachedLookupUri": "<redacted>", "Latitude": "<redacted>", "relativeLatitude": 0.5}


def test_redact_for_log_masks_digit_runs_in_free_text() -> None:
    redacted = redact_for_log({"note": "call +31612345678 or ext 42"})
    assert redacted["note"] == "call <digits:12> or ext 42"
