"""
Fixed parsing and dispatch rules.

Kept as plain constants so the format policy is visible in one place.
"""

CSV_DELIMITER = ","
CSV_QUOTE = '"'

# Prepended to XML attribute names so they never collide with child elements.
ATTRIBUTE_PREFIX = "@"

# Auto-detect order when the caller gives no hint. CSV must stay last: it never fails.
AUTO_DETECT_ORDER = ("json", "xml", "csv")

ALLOWED_CONTENT_TYPES = {
    "text/csv": "csv",
    "application/json": "json",
    "text/xml": "xml",
    "application/xml": "xml",
}

# Checked in this order against the lower-cased URL.
URL_EXTENSION_HINTS = (
    (".csv", "csv"),
    (".json", "json"),
    (".xml", "xml"),
)
