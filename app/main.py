import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.config import Settings
from app.exceptions.custom import GeminiError, SearchInProgressError
from app.exceptions.handlers import (
    gemini_error_handler,
    search_in_progress_error_handler,
)
from app.middleware import SessionCookieMiddleware
from app.routers.leads import router as leads_router
from app.services.gemini import GeminiService
from app.services.lead_search import LeadSearchService
from app.sessions import SessionStore


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = Settings()

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stdout,
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("google_genai").setLevel(logging.WARNING)

    gemini = GeminiService(settings.gemini_api_key, model=settings.gemini_model)

    app.state.settings = settings
    app.state.lead_search_service = LeadSearchService(
        gemini, min_segment_length=settings.min_segment_length
    )
    app.state.session_store = SessionStore(max_sessions=settings.max_sessions)

    yield


app = FastAPI(title="MapLeads Pro", lifespan=lifespan)

app.add_middleware(SessionCookieMiddleware)

app.add_exception_handler(GeminiError, gemini_error_handler)
app.add_exception_handler(SearchInProgressError, search_in_progress_error_handler)

app.include_router(leads_router)
