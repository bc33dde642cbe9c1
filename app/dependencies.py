from typing import Annotated

from fastapi import Depends, Request

from app.config import Settings
from app.middleware import SESSION_COOKIE
from app.services.lead_search import LeadSearchService
from app.sessions import SessionState, SessionStore


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_lead_search_service(request: Request) -> LeadSearchService:
    return request.app.state.lead_search_service


def get_session_store(request: Request) -> SessionStore:
    return request.app.state.session_store


def get_session(
    request: Request,
    store: Annotated[SessionStore, Depends(get_session_store)],
) -> SessionState:
    """Resolve the session bound by SessionCookieMiddleware."""
    session_id = getattr(request.state, "session_id", None)
    return store.get_or_create(session_id or request.cookies.get(SESSION_COOKIE))


SettingsDep = Annotated[Settings, Depends(get_settings)]
LeadSearchDep = Annotated[LeadSearchService, Depends(get_lead_search_service)]
SessionStoreDep = Annotated[SessionStore, Depends(get_session_store)]
SessionDep = Annotated[SessionState, Depends(get_session)]
