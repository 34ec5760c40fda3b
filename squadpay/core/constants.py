"""Global constants for the squadpay application."""

# Collection names
TOURNAMENTS_COLLECTION = "tournaments"
PARTICIPANTS_COLLECTION = "participants"

# Field used for ordering every roster query
CREATED_AT = "createdAt"

# Display fallbacks
UNNAMED_TOURNAMENT = "(Unnamed tournament)"
DEFAULT_TOURNAMENT_NAME = "Tournament"

# Reminders
MIN_PHONE_DIGITS = 10
WHATSAPP_BASE_URL = "https://wa.me"

# Receipts
RECEIPT_PREFIX = "RCT-"
RECEIPT_ID_LENGTH = 6
RECEIPT_DATE_FORMAT = "%d %b %Y"
RECEIPT_FILENAME = "squadpay-receipt.png"
RECEIPT_IMAGE_SCALE = 2
