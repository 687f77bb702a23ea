"""Data models for published records and sampling state."""

from pypassive.models._base import PassiveBaseModel, PassiveEnum
from pypassive.models.location import LocationFix
from pypassive.models.records import (
    CallType,
    LocationProvider,
    MessageType,
    PhoneBluetoothDevices,
    PhoneCall,
    PhoneContactList,
    PhoneRelativeLocation,
    PhoneSms,
    PhoneSmsUnread,
    call_type_from_code,
    message_type_from_code,
    provider_from_name,
)
from pypassive.models.sampling import SamplingFrequency, SamplingParameters, SamplingState

__all__ = [
    "CallType",
    "LocationFix",
    "LocationProvider",
    "MessageType",
    "PassiveBaseModel",
    "PassiveEnum",
    "PhoneBluetoothDevices",
    "PhoneCall",
    "PhoneContactList",
    "PhoneRelativeLocation",
    "PhoneSms",
    "PhoneSmsUnread",
    "SamplingFrequency",
    "SamplingParameters",
    "SamplingState",
    "call_type_from_code",
    "message_type_from_code",
    "provider_from_name",
]
