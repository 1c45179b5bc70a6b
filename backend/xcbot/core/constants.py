"""
Centralized constants for the scheduler, feed and messaging channel.

Change job IDs, URLs or payload tags here instead of scattering literals across main and services.
"""

# Scheduler job IDs (must match ids used in main.py add_job)
XCONTEST_JOB_ID = "xcontest_flights"
# Polling more often than this hammers XContest for no gain
MIN_XCONTEST_INTERVAL_SECONDS = 60

# Store needs INSERT ... ON CONFLICT DO NOTHING
SUPPORTED_DATABASE_DIALECTS = ("sqlite", "postgresql")

# XContest Switzerland (CCC) RSS feed of newly uploaded flights
XCONTEST_FEED_URL = "https://www.xcontest.org/rss/flights/?ccc"
XCONTEST_USER_AGENT = "xc-bot"

# Flight preview sizes (longest edge, pixels) and JPEG quality
PREVIEW_LARGE_MAX_PX = 1024
PREVIEW_SMALL_MAX_PX = 256
PREVIEW_JPEG_QUALITY = 85

# Channel kinds stored in users.usertype
USERTYPE_THREEMA = "threema"

# Threema E2E payload types (first byte of the decrypted payload)
THREEMA_MSG_TEXT = 0x01
THREEMA_MSG_FILE = 0x17
THREEMA_MSG_DELIVERY_RECEIPT = 0x80

# Notification fan-out: concurrent sends per flight
NOTIFY_MAX_WORKERS = 8
# Background public key caching
IDENTITY_CACHE_MAX_WORKERS = 2

SOURCE_URL = "https://github.com/dbrgn/xc-bot/"
CONTACT_URL = "https://threema.id/EBEP4UCA?text="
