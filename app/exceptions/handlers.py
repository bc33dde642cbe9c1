import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from .custom import GeminiError, SearchInProgressError

logger = logging.getLogger(__name__)

SEARCH_FAILED_MESSAGE = (
    "Failed to fetch data. Please try again with a more specific location."
)


async def gemini_error_handler(_request: Request, exc: GeminiError) -> JSONResponse:
    logger.error("Gemini error: %s (status=%s)", exc.message, exc.status_code)
    return JSONResponse(
        status_code=502,
        content={"detail": SEARCH_FAILED_MESSAGE},
    )


async def search_in_progress_error_handler(
    _request: Request, exc: SearchInProgressError
) -> JSONResponse:
    logger.warning("Rejected overlapping search for session %s", exc.session_id)
    return JSONResponse(
        status_code=409,
        content={"detail": "A search is already running. Wait for it to finish."},
    )
