import logging
from typing import Optional

from fastapi import FastAPI, UploadFile, File
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import CORS_ALLOWED_ORIGINS, LOG_LEVEL, MAX_UPLOAD_BYTES
from .fetch import InvalidUrlError, fetch_remote_text, validate_url
from .models import ErrorResponse, HealthResponse, ProcessResponse, UrlRequest
from .normalize import (
    UnsupportedFormatError,
    decode_payload,
    hint_from_content_type,
    hint_from_url,
    resolve,
)

logger = logging.getLogger(__name__)
logging.getLogger("app").setLevel(LOG_LEVEL)

app = FastAPI(
    title="data-normalizer",
    description="Normalize CSV, JSON and XML payloads into one tree-shaped value model",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ALLOWED_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    413: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@app.get("/health", response_model=HealthResponse)
def health():
    return {"ok": True}


@app.post("/api/data/upload", response_model=ProcessResponse, responses=ERROR_RESPONSES)
async def upload(file: Optional[UploadFile] = File(None)):
    raw = await file.read(MAX_UPLOAD_BYTES + 1) if file is not None else b""
    if not raw:
        return _error(400, "No file uploaded")

    try:
        hint = hint_from_content_type(file.content_type)
    except UnsupportedFormatError:
        return _error(400, "Invalid file type. Only CSV, JSON, and XML files are allowed.")

    if len(raw) > MAX_UPLOAD_BYTES:
        return _error(413, f"File exceeds the {MAX_UPLOAD_BYTES} byte upload limit")

    try:
        content, report = decode_payload(raw)
        logger.debug("Decoded %s: %s", file.filename, report)
        data = resolve(content, hint)
    except Exception as exc:
        logger.exception("Error processing uploaded file %s", file.filename)
        return _error(500, f"Error processing file: {exc}")

    logger.info("Successfully processed %s", file.filename)
    return {"success": True, "data": data, "message": "File processed successfully"}


@app.post("/api/data/fetch-url", response_model=ProcessResponse, responses=ERROR_RESPONSES)
async def fetch_url(request: UrlRequest):
    if not request.url.strip():
        return _error(400, "URL is required")

    try:
        validate_url(request.url)
    except InvalidUrlError:
        return _error(400, "Invalid URL format")

    logger.info("Fetching data from URL: %s", request.url)

    try:
        content = await fetch_remote_text(request.url)
        data = resolve(content, hint_from_url(request.url))
    except Exception as exc:
        logger.exception("Error fetching URL: %s", request.url)
        return _error(500, f"Error fetching URL: {exc}")

    logger.info("Successfully processed data from URL: %s", request.url)
    return {
        "success": True,
        "data": data,
        "message": "URL data fetched and processed successfully",
    }
