"""Per-source collection pipelines."""

from pypassive.collectors.bluetooth import BluetoothAdapter, BluetoothCollector
from pypassive.collectors.contacts import ContactListCollector
from pypassive.collectors.location import LocationCollector, PowerSignalSource
from pypassive.collectors.phone_log import PhoneLogCollector

__all__ = [
    "BluetoothAdapter",
    "BluetoothCollector",
    "ContactListCollector",
    "LocationCollector",
    "PhoneLogCollector",
    "PowerSignalSource",
]
