"""Published record models.

Times are epoch seconds. ``received_time`` is the wall-clock time the
record was created by the agent; ``event_time`` is when the underlying
event happened. Identifying fields only ever appear as anonymized keys.
"""

from __future__ import annotations

from typing import ClassVar

from pydantic import Field

from pypassive._constants import (
    TOPIC_BLUETOOTH,
    TOPIC_CALL,
    TOPIC_CONTACTS,
    TOPIC_LOCATION,
    TOPIC_SMS,
    TOPIC_SMS_UNREAD,
)
from pypassive.models._base import PassiveBaseModel, PassiveEnum


class CallType(PassiveEnum):
    INCOMING = "incoming"
    OUTGOING = "outgoing"
    MISSED = "missed"
    VOICEMAIL = "voicemail"
    UNKNOWN = "unknown"


class MessageType(PassiveEnum):
    INCOMING = "incoming"
    OUTGOING = "outgoing"
    OTHER = "other"
    UNKNOWN = "unknown"


class LocationProvider(PassiveEnum):
    GPS = "gps"
    NETWORK = "network"
    OTHER = "other"


# Call log type codes.
_CALL_TYPES: dict[int, CallType] = {
    1: CallType.INCOMING,
    2: CallType.OUTGOING,
    3: CallType.MISSED,
    4: CallType.VOICEMAIL,
}

# Message box codes: all, inbox, sent, draft, outbox, failed, queued.
_MESSAGE_TYPES: dict[int, MessageType] = {
    0: MessageType.OTHER,
    1: MessageType.INCOMING,
    2: MessageType.OUTGOING,
    3: MessageType.OTHER,
    4: MessageType.OUTGOING,
    5: MessageType.OTHER,
    6: MessageType.OTHER,
}


def call_type_from_code(code: int | None) -> CallType:
    if code is None:
        return CallType.UNKNOWN
    return _CALL_TYPES.get(code, CallType.UNKNOWN)


def message_type_from_code(code: int | None) -> MessageType:
    if code is None:
        return MessageType.UNKNOWN
    return _MESSAGE_TYPES.get(code, MessageType.UNKNOWN)


def provider_from_name(name: str | None) -> LocationProvider:
    """Map a provider name (``"gps"``, ``"network"``, ...) to the closed enum."""
    if not name:
        return LocationProvider.OTHER
    return LocationProvider(name.strip().lower())


class PhoneCall(PassiveBaseModel):
    """One call log entry."""

    TOPIC: ClassVar[str] = TOPIC_CALL

    event_time: float
    received_time: float
    duration_seconds: float
    anonymized_target_key: bytes | None
    call_type: CallType
    target_is_known_contact: bool
    target_is_anonymous_non_numeric: bool
    raw_target_length: int = Field(ge=0)


class PhoneSms(PassiveBaseModel):
    """One message log entry."""

    TOPIC: ClassVar[str] = TOPIC_SMS

    event_time: float
    received_time: float
    anonymized_target_key: bytes | None
    message_type: MessageType
    body_length: int = Field(ge=0)
    sender_is_known_contact: bool | None
    """Only known for incoming messages."""
    target_is_anonymous_non_numeric: bool
    raw_target_length: int = Field(ge=0)


class PhoneSmsUnread(PassiveBaseModel):
    """Number of unread messages at one point in time."""

    TOPIC: ClassVar[str] = TOPIC_SMS_UNREAD

    event_time: float
    received_time: float
    count: int = Field(ge=0)


class PhoneContactList(PassiveBaseModel):
    """Contact-list changes since the previous cycle."""

    TOPIC: ClassVar[str] = TOPIC_CONTACTS

    event_time: float
    received_time: float
    added: int | None
    removed: int | None
    total_count: int = Field(ge=0)


class PhoneRelativeLocation(PassiveBaseModel):
    """A location fix relative to the installation's private origin."""

    TOPIC: ClassVar[str] = TOPIC_LOCATION

    event_time: float
    received_time: float
    provider: LocationProvider
    relative_latitude: float | None = None
    relative_longitude: float | None = None
    relative_altitude: float | None = None
    accuracy: float | None = None
    speed: float | None = None
    bearing: float | None = None


class PhoneBluetoothDevices(PassiveBaseModel):
    """Outcome of one bluetooth discovery."""

    TOPIC: ClassVar[str] = TOPIC_BLUETOOTH

    event_time: float
    received_time: float
    paired_devices: int = Field(ge=0)
    nearby_devices: int = Field(ge=0)
    bluetooth_enabled: bool
