"""Protocol constants and fixed defaults shared across socialfed."""

ACTIVITYSTREAMS_CONTEXT = "https://www.w3.org/ns/activitystreams"
SECURITY_CONTEXT = "https://w3id.org/security/v1"

ACTIVITYPUB_CONTEXT = [ACTIVITYSTREAMS_CONTEXT, SECURITY_CONTEXT]

PUBLIC_COLLECTION = "https://www.w3.org/ns/activitystreams#Public"

ACTIVITY_JSON_CONTENT_TYPE = "application/activity+json"

# Handles are the same token that mention extraction looks for after "@"
HANDLE_PATTERN = r"[A-Za-z0-9_]+"

MIN_RSA_KEY_SIZE = 2048
RSA_PUBLIC_EXPONENT = 65537

DEFAULT_PUSH_URL = "/"
DEFAULT_PUSH_ICON = "/icons/icon-192x192.png"
DEFAULT_PUSH_BADGE = "/icons/icon-72x72.png"
NOTIFICATIONS_PATH = "/notifications"

# Push services answer 404/410 for subscriptions that will never work again
GONE_STATUS_CODES = (404, 410)

DEFAULT_PAGE_SIZE = 20
