"""Tests for record models with PassiveBaseModel + PassiveEnum."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from pypassive.models import (
    CallType,
    LocationFix,
    LocationProvider,
    MessageType,
    PhoneContactList,
    PhoneSms,
    SamplingFrequency,
    SamplingParameters,
    call_type_from_code,
    message_type_from_code,
    provider_from_name,
)


@pytest.mark.parametrize(
    ("code", "expected"),
    [(1, CallType.INCOMING), (2, CallType.OUTGOING), (3, CallType.MISSED), (4, CallType.VOICEMAIL), (7, CallType.UNKNOWN), (None, CallType.UNKNOWN)],
)
def test_call_type_codes(code: int | None, expected: CallType) -> None:
    assert call_type_from_code(code) == expected


@pytest.mark.parametrize(
    ("code", "expected"),
    [
        (0, MessageType.OTHER),
        (1, MessageType.INCOMING),
        (2, MessageType.OUTGOING),
        (3, MessageType.OTHER),
        (4, MessageType.OUTGOING),
        (5, MessageType.OTHER),
        (6, MessageType.OTHER),
        (42, MessageType.UNKNOWN),
    ],
)
def test_message_type_codes(code: int, expected: MessageType) -> None:
    assert message_type_from_code(code) == expected


def test_provider_names_are_total() -> None:
    assert provider_from_name("gps") == LocationProvider.GPS
    assert provider_from_name(" Network ") == LocationProvider.NETWORK
    assert provider_from_name("passive") == LocationProvider.OTHER
    assert provider_from_name(None) == LocationProvider.OTHER


def test_unknown_enum_value_falls_back() -> None:
    assert CallType("rejected") == CallType.UNKNOWN


def test_location_fix_accepts_aliases_and_missing_fields() -> None:
    fix = LocationFix.model_validate({"provider": "gps", "timestamp": "1700000000000", "lat": "52.1", "lng": 4.3})
    assert fix.time == 1_700_000_000_000
    assert fix.latitude == 52.1
    assert fix.longitude == 4.3
    assert fix.altitude is None
    assert fix.bearing is None


def test_records_are_frozen_and_strict() -> None:
    record = PhoneContactList(event_time=1.0, received_time=1.0, added=None, removed=None, total_count=0)
    with pytest.raises(ValidationError):
        record.total_count = 3  # type: ignore[misc]
    with pytest.raises(ValidationError):
        PhoneContactList(event_time=1.0, received_time=1.0, added=None, removed=None, total_count=0, extra=1)


def test_sms_payload_omits_nothing_and_keeps_absent_sender() -> None:
    record = PhoneSms(
        event_time=1.0,
        received_time=2.0,
        anonymized_target_key=None,
        message_type=MessageType.OUTGOING,
        body_length=3,
        sender_is_known_contact=None,
        target_is_anonymous_non_numeric=True,
        raw_target_length=6,
    )
    payload = record.to_payload()
    assert payload["senderIsKnownContact"] is None
    assert payload["anonymizedTargetKey"] is None
    assert payload["messageType"] == "outgoing"


def test_sampling_parameters() -> None:
    params = SamplingParameters()
    assert params.intervals_for(SamplingFrequency.NORMAL) == (900, 300)
    assert params.intervals_for(SamplingFrequency.REDUCED) == (3600, 1200)
    with pytest.raises(ValidationError):
        SamplingParameters(battery_level_minimum=0.5, battery_level_reduced=0.4)
