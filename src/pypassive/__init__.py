"""pypassive - Passive telemetry collection core."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pypassive")
except PackageNotFoundError:
    __version__ = "0+local"
from pypassive.agent import AgentSources, PassiveAgent
from pypassive.config import CollectorToggles, LocationConfig, PassiveConfig
from pypassive.exceptions import (
    DiscoveryTimeoutError,
    HashingError,
    LifecycleError,
    PassiveConfigError,
    PassiveCryptoError,
    PassiveError,
    ProviderUnavailableError,
    SinkError,
    SourceQueryError,
    StoreError,
)
from pypassive.models import (
    CallType,
    LocationFix,
    LocationProvider,
    MessageType,
    PhoneBluetoothDevices,
    PhoneCall,
    PhoneContactList,
    PhoneRelativeLocation,
    PhoneSms,
    PhoneSmsUnread,
    SamplingFrequency,
)

__all__ = [
    "__version__",
    "AgentSources",
    "CallType",
    "CollectorToggles",
    "DiscoveryTimeoutError",
    "HashingError",
    "LifecycleError",
    "LocationConfig",
    "LocationFix",
    "LocationProvider",
    "MessageType",
    "PassiveAgent",
    "PassiveConfig",
    "PassiveConfigError",
    "PassiveCryptoError",
    "PassiveError",
    "PhoneBluetoothDevices",
    "PhoneCall",
    "PhoneContactList",
    "PhoneRelativeLocation",
    "PhoneSms",
    "PhoneSmsUnread",
    "ProviderUnavailableError",
    "SamplingFrequency",
    "SinkError",
    "SourceQueryError",
    "StoreError",
]
