import asyncio
import logging

from fastapi import APIRouter, Response
from fastapi.responses import HTMLResponse

from app.dependencies import LeadSearchDep, SessionDep, SessionStoreDep, SettingsDep
from app.exceptions.custom import GeminiError
from app.exceptions.handlers import SEARCH_FAILED_MESSAGE
from app.mappers.csv_export import export_csv, export_filename
from app.mappers.dashboard_builder import build_dashboard
from app.schemas.leads import GeoLocation, SearchParams
from app.schemas.responses import (
    LeadsResponse,
    ResetRequest,
    ResetResponse,
    SearchRequest,
    SearchResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/", response_class=HTMLResponse)
async def dashboard(session: SessionDep, settings: SettingsDep) -> str:
    return build_dashboard(session, default_limit=settings.default_limit)


@router.post("/search", response_model=SearchResponse)
async def search_leads(
    request: SearchRequest,
    service: LeadSearchDep,
    store: SessionStoreDep,
    session: SessionDep,
    settings: SettingsDep,
) -> SearchResponse:
    data = request.model_dump(exclude={"latitude", "longitude"})
    if "limit" not in request.model_fields_set:
        data["limit"] = settings.default_limit
    params = SearchParams(**data)
    location = None
    if request.latitude is not None and request.longitude is not None:
        location = GeoLocation(latitude=request.latitude, longitude=request.longitude)

    store.begin_search(session.session_id)
    try:
        result = await service.search(params, location)
    except GeminiError:
        store.fail_search(session.session_id, SEARCH_FAILED_MESSAGE, params)
        raise
    except Exception as exc:
        logger.exception("Search failed for session %s", session.session_id)
        store.fail_search(session.session_id, SEARCH_FAILED_MESSAGE, params)
        raise GeminiError(str(exc)) from exc
    except asyncio.CancelledError:
        logger.warning("Search cancelled for session %s", session.session_id)
        store.cancel_search(session.session_id)
        raise

    before = len(session.leads)
    state = store.complete_search(session.session_id, result, params)
    return SearchResponse(
        added=len(state.leads) - before,
        total=len(state.leads),
        narrative=result.narrative,
        leads=result.leads,
    )


@router.get("/leads", response_model=LeadsResponse)
async def list_leads(session: SessionDep) -> LeadsResponse:
    return LeadsResponse(
        total=len(session.leads),
        narrative=session.narrative,
        error=session.error,
        searching=session.searching,
        leads=session.leads,
    )


@router.post("/leads/reset", response_model=ResetResponse)
async def reset_leads(
    store: SessionStoreDep,
    session: SessionDep,
    request: ResetRequest | None = None,
) -> ResetResponse:
    if request is None or not request.confirm:
        return ResetResponse(cleared=False, total=len(session.leads))

    state = store.reset(session.session_id)
    logger.info("Session %s cleared %d leads", session.session_id, len(session.leads))
    return ResetResponse(cleared=True, total=len(state.leads))


@router.get("/leads/export")
async def export_leads(session: SessionDep) -> Response:
    content = export_csv(session.leads)
    if content is None:
        return Response(status_code=204)
    return Response(
        content=content,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{export_filename()}"'},
    )
