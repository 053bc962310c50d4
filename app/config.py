from __future__ import annotations

import os

DEFAULT_MAX_UPLOAD_BYTES = 50 * 1024 * 1024

CORS_ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.getenv("DATA_NORMALIZER_CORS_ORIGINS", "*").split(",")
    if origin.strip()
]
MAX_UPLOAD_BYTES = int(os.getenv("DATA_NORMALIZER_MAX_UPLOAD_BYTES", str(DEFAULT_MAX_UPLOAD_BYTES)))
FETCH_TIMEOUT_SECONDS = float(os.getenv("DATA_NORMALIZER_FETCH_TIMEOUT", "30"))
LOG_LEVEL = os.getenv("DATA_NORMALIZER_LOG_LEVEL", "INFO").upper()
