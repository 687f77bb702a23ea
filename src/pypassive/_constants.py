"""Internal constants shared across the library."""

# ------------------------------------------------------------------
# Polling
# ------------------------------------------------------------------

#: Maximum rows requested from a source per query.
PAGE_LIMIT = 1000

# ------------------------------------------------------------------
# Persisted key names
# ------------------------------------------------------------------

LAST_CALL_KEY = "last.call.time"
LAST_SMS_KEY = "last.sms.time"
SALT_KEY = "hash.salt"
LATITUDE_REFERENCE_KEY = "latitude.reference"
LONGITUDE_REFERENCE_KEY = "longitude.reference"
ALTITUDE_REFERENCE_KEY = "altitude.reference"
CONTACT_LOOKUPS_KEY = "contact.lookups"
# Replaced by CONTACT_LOOKUPS_KEY; removed on collector start.
CONTACT_IDS_KEY = "contact.ids"

# ------------------------------------------------------------------
# Identity hashing
# ------------------------------------------------------------------

SALT_NBYTES = 32
# Keep the last 9 digits of a phone number (drops country/area prefixes).
PHONE_SUFFIX_MODULUS = 1_000_000_000

# ------------------------------------------------------------------
# Location
# ------------------------------------------------------------------

# Latitude reference is drawn uniformly from [-4, 4) degrees.
LATITUDE_REFERENCE_RANGE = 4.0

# Finite stand-ins for infinities, per numeric width of the output field.
DOUBLE_MAX_SENTINEL = 1e308
FLOAT_MAX_SENTINEL = 3e38

# ------------------------------------------------------------------
# Record topics
# ------------------------------------------------------------------

TOPIC_CALL = "phone_call"
TOPIC_SMS = "phone_sms"
TOPIC_SMS_UNREAD = "phone_sms_unread"
TOPIC_CONTACTS = "phone_contacts"
TOPIC_LOCATION = "phone_relative_location"
TOPIC_BLUETOOTH = "phone_bluetooth_devices"
