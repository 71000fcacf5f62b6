"""
core/constants.py - Engine-wide defaults.

Timing values are milliseconds unless the name says otherwise.
"""

# Debounce window restarted by every new request while a batch is pending.
CALCULATION_DEBOUNCE_MS = 50

# Upper bound on how long a pending batch may be held back by new requests.
CALCULATION_MAX_WAIT_MS = 500

# Rolling history caps.
MAX_EXECUTION_HISTORY_SIZE = 50
MAX_BATCH_HISTORY_SIZE = 50

# Source tags recorded on scheduled tasks.
SOURCE_USER = "user"
SOURCE_STORE = "store"
SOURCE_DEPENDENCY = "dependency"

# Device count assumed when neither context nor params provide one.
DEFAULT_DEVICE_COUNT = 10

MONTHS_PER_YEAR = 12
