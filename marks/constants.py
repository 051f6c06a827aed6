# marks/constants.py
# Shared literals for the bookmarks API, feed and display helpers

# Header set by the upstream auth layer; trusted as the owner id
USER_ID_HEADER: str = "X-User-Id"

FEED_KIND_INSERT: str = "insert"
FEED_KIND_DELETE: str = "delete"

FAVICON_URL_TEMPLATE: str = "https://www.google.com/s2/favicons?domain={origin}&sz=32"

STATUS_LABELS: dict[str, str] = {
    "connecting": "Connecting…",
    "connected": "Live — syncs across all open tabs",
    "error": "Realtime error — check logs",
}

MSG_FIELDS_REQUIRED: str = "Both URL and title are required."
MSG_INVALID_URL: str = "Please enter a valid URL."
